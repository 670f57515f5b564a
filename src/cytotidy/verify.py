"""Sanity checks that a generated dataset looks like real cytometry data."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from cytotidy.exceptions import ValidationError

if TYPE_CHECKING:
    from cytotidy.store import EventStore

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["sample_id", "FSC-A", "SSC-A", "FSC-H", "FL1-A", "FL2-A", "FL3-A"]
DEBRIS_SCATTER_LIMIT = 10000.0


@dataclass
class VerificationReport:
    sample_sizes: pd.DataFrame
    live_dead: pd.DataFrame
    marker_patterns: pd.DataFrame
    fsc_correlation: pd.DataFrame
    debris_detection: pd.DataFrame
    summary: Optional[pd.DataFrame] = None

    def as_dict(self) -> Dict[str, pd.DataFrame]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


def _per_sample(events: pd.DataFrame, func) -> pd.DataFrame:
    records = []
    for sample_id, frame in events.groupby("sample_id", sort=False):
        record = {"sample_id": sample_id}
        record.update(func(frame))
        records.append(record)
    return pd.DataFrame(records)


def _pct(mask: pd.Series) -> float:
    return float(mask.mean() * 100) if len(mask) else float("nan")


def verify_dataset(
    events: pd.DataFrame,
    summary: Optional[pd.DataFrame] = None,
    fl1_threshold: float = 5000.0,
    marker_threshold: float = 5000.0,
) -> VerificationReport:
    missing = [c for c in REQUIRED_COLUMNS if c not in events.columns]
    if missing:
        raise ValidationError(f"Event table missing required columns: {missing}")

    sample_sizes = (
        events.groupby("sample_id", sort=False).size().rename("n_events").reset_index()
    )

    status = np.where(events["FL1-A"] < fl1_threshold, "Live", "Dead")
    live_dead = (
        events.assign(status=status)
        .groupby(["sample_id", "status"], sort=False)
        .size()
        .rename("count")
        .reset_index()
    )
    totals = live_dead.groupby("sample_id")["count"].transform("sum")
    live_dead["fraction"] = live_dead["count"] / totals

    live_events = events[events["FL1-A"] < fl1_threshold]

    marker_patterns = _per_sample(
        live_events,
        lambda f: {
            "fl2_high_pct": _pct(f["FL2-A"] > marker_threshold),
            "fl3_high_pct": _pct(f["FL3-A"] > marker_threshold),
        },
    )

    def _fsc(f: pd.DataFrame) -> Dict[str, float]:
        ratio = f["FSC-A"] / f["FSC-H"].replace(0, np.nan)
        return {
            "correlation": float(f["FSC-A"].corr(f["FSC-H"])),
            "fsc_ratio_mean": float(ratio.mean()),
            "fsc_ratio_sd": float(ratio.std()),
        }

    fsc_correlation = _per_sample(live_events, _fsc)

    def _debris(f: pd.DataFrame) -> Dict[str, float]:
        mask = (f["FSC-A"] < DEBRIS_SCATTER_LIMIT) & (f["SSC-A"] < DEBRIS_SCATTER_LIMIT)
        return {"debris_count": int(mask.sum()), "debris_pct": _pct(mask)}

    debris_detection = _per_sample(events, _debris)

    return VerificationReport(
        sample_sizes=sample_sizes,
        live_dead=live_dead,
        marker_patterns=marker_patterns,
        fsc_correlation=fsc_correlation,
        debris_detection=debris_detection,
        summary=summary,
    )


def load_dataset(
    store: EventStore, events_table: str = "flow_data", summary_table: str = "flow_summary"
) -> Tuple[pd.DataFrame, Optional[pd.DataFrame]]:
    """Read the event and summary relations back from a store."""
    events = store.read_table(events_table)
    summary = store.read_table(summary_table) if summary_table in store.table_names() else None
    return events, summary


def log_report(report: VerificationReport) -> None:
    for name, table in report.as_dict().items():
        logger.info(f"{name.replace('_', ' ').capitalize()}:\n{table.to_string(index=False)}")
