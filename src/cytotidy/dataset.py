"""Dataset builder: all configured samples, gated, concatenated and summarised."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional

import numpy as np
import pandas as pd

from cytotidy.config import GatingConfig, SampleConfig, validate_sample_configs
from cytotidy.exceptions import ValidationError
from cytotidy.generate import generate_sample

if TYPE_CHECKING:
    from cytotidy.store import EventStore

logger = logging.getLogger(__name__)

MARKER_PCT_RANGE = (0.25, 0.75)
LIVE_DEAD_THRESHOLD = 5000.0

SUMMARY_COLUMNS = [
    "sample_id",
    "total_events",
    "mean_fsc_a",
    "sd_fsc_a",
    "mean_ssc_a",
    "mean_fl1_a",
    "mean_fl2_a",
    "mean_fl3_a",
    "estimated_live_cells",
    "estimated_dead_cells",
]


@dataclass
class Dataset:
    events: pd.DataFrame
    summary: pd.DataFrame
    configs: List[SampleConfig]


def resolve_configs(configs: Iterable[SampleConfig], rng: np.random.Generator) -> List[SampleConfig]:
    """Fill unset marker positive fractions with Uniform(0.25, 0.75) draws.

    Draws are taken in configuration order, FL2 before FL3, before any sample
    is generated.
    """
    low, high = MARKER_PCT_RANGE
    resolved = []
    for config in configs:
        updates = {}
        if config.fl2_positive_pct is None:
            updates["fl2_positive_pct"] = float(rng.uniform(low, high))
        if config.fl3_positive_pct is None:
            updates["fl3_positive_pct"] = float(rng.uniform(low, high))
        if updates:
            logger.info(f"{config.sample_id}: drew marker positive fractions {updates}")
        resolved.append(config.model_copy(update=updates))
    return resolved


def summarize_dataset(events: pd.DataFrame, fl1_threshold: float = LIVE_DEAD_THRESHOLD) -> pd.DataFrame:
    """Per-sample counts, channel means/SDs and a viability-threshold live/dead split."""
    required = {"sample_id", "FSC-A", "SSC-A", "FL1-A", "FL2-A", "FL3-A"}
    missing = required - set(events.columns)
    if missing:
        raise ValidationError(f"Event table missing required columns: {sorted(missing)}")

    records = []
    for sample_id, frame in events.groupby("sample_id", sort=False):
        live = frame["FL1-A"] < fl1_threshold
        records.append({
            "sample_id": sample_id,
            "total_events": len(frame),
            "mean_fsc_a": frame["FSC-A"].mean(),
            "sd_fsc_a": frame["FSC-A"].std(),
            "mean_ssc_a": frame["SSC-A"].mean(),
            "mean_fl1_a": frame["FL1-A"].mean(),
            "mean_fl2_a": frame["FL2-A"].mean(),
            "mean_fl3_a": frame["FL3-A"].mean(),
            "estimated_live_cells": int(live.sum()),
            "estimated_dead_cells": int((~live).sum()),
        })
    return pd.DataFrame(records, columns=SUMMARY_COLUMNS)


def build_dataset(
    configs: Iterable[SampleConfig | dict],
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    gating: Optional[GatingConfig] = None,
) -> Dataset:
    """Generate, gate and concatenate every configured sample.

    Either pass a ``numpy.random.Generator`` or a ``seed`` to build one. The
    stream is consumed in configuration order: marker fraction draws first,
    then each sample's debris, dead, singlet and doublet blocks and outliers.
    """
    validated = validate_sample_configs(configs)
    if rng is None:
        rng = np.random.default_rng(seed)

    resolved = resolve_configs(validated, rng)
    tables = [generate_sample(config, rng, gating) for config in resolved]
    events = pd.concat(tables, ignore_index=True)
    fl1_threshold = gating.fl1_threshold if gating is not None else LIVE_DEAD_THRESHOLD
    summary = summarize_dataset(events, fl1_threshold)
    logger.info(f"Built dataset with {len(events)} events across {len(resolved)} samples")
    return Dataset(events=events, summary=summary, configs=resolved)


def write_dataset(
    dataset: Dataset,
    store: EventStore,
    events_table: str = "flow_data",
    summary_table: str = "flow_summary",
) -> None:
    """Hand both relations to an :class:`~cytotidy.store.EventStore`."""
    store.create_or_replace_table(events_table, dataset.events)
    store.create_or_replace_table(summary_table, dataset.summary)
    logger.info(f"Wrote tables '{events_table}' and '{summary_table}'")
