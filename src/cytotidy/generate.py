"""Per-sample event table assembly."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import numpy as np
import pandas as pd

from cytotidy.config import GatingConfig, SampleConfig
from cytotidy.exceptions import ConfigurationError
from cytotidy.gate import apply_gates
from cytotidy.populations import (
    CHANNELS,
    OUTLIER_SUFFIX,
    dead_block,
    debris_block,
    doublet_block,
    singlet_block,
)

logger = logging.getLogger(__name__)

EVENT_COLUMNS = ["sample_id", "event_id", *CHANNELS, "population"]
OUTLIER_FACTOR_RANGE = (0.1, 3.0)


def population_sizes(config: SampleConfig) -> Dict[str, int]:
    """Split the event count into populations.

    Debris and dead counts are rounded first and live events take the
    remainder, so the sizes always add up to ``n_events``. Rounding both
    halves up can overshoot the total; the dead count is capped so it never
    exceeds what debris leaves.
    """
    n = config.n_events
    n_debris = int(round(n * config.debris_pct))
    n_dead = min(int(round(n * config.dead_pct)), n - n_debris)
    n_live = n - n_debris - n_dead
    n_singlets = int(round(n_live * config.singlet_pct))
    return {
        "debris": n_debris,
        "dead": n_dead,
        "live_singlet": n_singlets,
        "doublet": n_live - n_singlets,
    }


def inject_outliers(df: pd.DataFrame, n_outliers: int, rng: np.random.Generator) -> pd.DataFrame:
    """Scale FSC-A/SSC-A of randomly chosen events and tag them as outliers.

    Candidates are drawn across the whole sample regardless of population.
    """
    if n_outliers <= 0:
        return df
    out = df.copy()
    idx = rng.choice(len(out), size=n_outliers, replace=False)
    low, high = OUTLIER_FACTOR_RANGE
    for channel in ("FSC-A", "SSC-A"):
        values = out[channel].to_numpy(dtype=float, copy=True)
        values[idx] *= rng.uniform(low, high, size=n_outliers)
        out[channel] = values
    labels = out["population"].to_numpy(dtype=object, copy=True)
    labels[idx] = [f"{label}{OUTLIER_SUFFIX}" for label in labels[idx]]
    out["population"] = labels
    return out


def assemble_sample(config: SampleConfig, rng: np.random.Generator) -> pd.DataFrame:
    """Build the ungated event table for one sample configuration."""
    if not config.is_resolved:
        raise ConfigurationError(
            f"{config.sample_id}: marker positive fractions must be resolved before generation"
        )
    sizes = population_sizes(config)
    logger.debug(f"{config.sample_id}: population sizes {sizes}")

    scatter = dict(
        fsc_mean=config.fsc_mean,
        fsc_sd=config.fsc_sd,
        ssc_mean=config.ssc_mean,
        ssc_sd=config.ssc_sd,
    )
    markers = dict(
        fl2_positive_pct=config.fl2_positive_pct,
        fl3_positive_pct=config.fl3_positive_pct,
    )
    blocks = []
    if sizes["debris"] > 0:
        blocks.append(debris_block(rng, sizes["debris"]))
    if sizes["dead"] > 0:
        blocks.append(dead_block(rng, sizes["dead"], **scatter))
    if sizes["live_singlet"] > 0:
        blocks.append(singlet_block(rng, sizes["live_singlet"], **scatter, **markers))
    if sizes["doublet"] > 0:
        blocks.append(doublet_block(rng, sizes["doublet"], **scatter, **markers))

    events = pd.concat(blocks, ignore_index=True)
    events = inject_outliers(events, int(round(config.n_events * config.outlier_pct)), rng)
    events[CHANNELS] = events[CHANNELS].clip(lower=0)

    events.insert(0, "event_id", np.arange(1, len(events) + 1, dtype=np.int64))
    events.insert(0, "sample_id", config.sample_id)
    return events[EVENT_COLUMNS]


def generate_sample(
    config: SampleConfig, rng: np.random.Generator, gating: Optional[GatingConfig] = None
) -> pd.DataFrame:
    """Assemble one sample and apply both gates."""
    events = assemble_sample(config, rng)
    gated, params = apply_gates(events, gating)
    logger.info(
        f"{config.sample_id}: {len(gated)} events, "
        f"{int(gated['id_live'].sum())} live-gated, {int(gated['id_size'].sum())} size-gated"
    )
    logger.debug(f"{config.sample_id}: gate parameters {params}")
    return gated
