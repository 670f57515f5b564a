"""Two-stage gating of assembled sample tables.

Gate 1 (``id_live``) is a threshold gate on the viability channel capped by
a forward-scatter percentile; gate 2 (``id_size``) is an elliptical gate on
FSC-A/SSC-A built from the Mahalanobis distance to the live-gated events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.stats import chi2

from cytotidy.config import GatingConfig
from cytotidy.exceptions import GatingError
from cytotidy.populations import DEAD, DEBRIS, LIVE_POPULATIONS, base_population

logger = logging.getLogger(__name__)

SCATTER_CHANNELS = ["FSC-A", "SSC-A"]


@dataclass
class GateResult:
    mask: pd.Series
    params: Dict[str, float]


def _require_columns(df: pd.DataFrame, columns) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise GatingError(f"Required columns for gating not found: {missing}")


def live_gate(df: pd.DataFrame, fl1_threshold: float = 5000.0, fsc_quantile: float = 0.99) -> GateResult:
    """Viability/size threshold gate.

    The FSC-A cap is the ``fsc_quantile`` percentile of events labelled
    ``live_singlet`` or ``doublet`` (outlier suffix ignored). Membership
    itself only excludes debris and dead labels and then applies the two
    thresholds.
    """
    _require_columns(df, ["population", "FSC-A", "FL1-A"])
    base = df["population"].astype(str).map(base_population)

    eligible = base.isin(LIVE_POPULATIONS)
    if eligible.any():
        fsc_threshold = float(np.quantile(df.loc[eligible, "FSC-A"].to_numpy(), fsc_quantile))
    else:
        logger.warning("No live-labelled events available to calibrate the FSC-A threshold")
        fsc_threshold = float("nan")

    mask = (
        ~base.isin([DEBRIS, DEAD])
        & (df["FL1-A"] < fl1_threshold)
        & (df["FSC-A"] <= fsc_threshold)
    )
    return GateResult(
        mask.astype(bool),
        {"fsc_threshold": fsc_threshold, "fl1_threshold": float(fl1_threshold)},
    )


def mahalanobis_distance(points: np.ndarray, center: np.ndarray, cov: np.ndarray) -> np.ndarray:
    """Squared Mahalanobis distance of each row of ``points`` to ``center``."""
    try:
        inv_cov = np.linalg.inv(cov)
    except np.linalg.LinAlgError as e:
        raise GatingError(f"Covariance matrix is singular: {cov.tolist()}") from e
    delta = points - center
    return np.einsum("ij,jk,ik->i", delta, inv_cov, delta)


def size_gate(
    df: pd.DataFrame,
    live_mask: pd.Series,
    chi2_quantile: float = 0.99,
    min_events: int = 3,
) -> GateResult:
    """Elliptical FSC-A/SSC-A gate calibrated on the live-gated events.

    With fewer than ``min_events`` live events no covariance is estimated and
    the gate passes ``live_mask`` through unchanged.
    """
    _require_columns(df, SCATTER_CHANNELS)
    live_mask = live_mask.astype(bool)
    n_live = int(live_mask.sum())
    if n_live < min_events:
        logger.debug(f"Only {n_live} live events; size gate falls back to the live gate")
        return GateResult(live_mask.copy(), {"applied": 0.0, "n_live": float(n_live)})

    points = df[SCATTER_CHANNELS].to_numpy(dtype=float)
    live_points = points[live_mask.to_numpy()]
    center = live_points.mean(axis=0)
    cov = np.cov(live_points, rowvar=False)

    distance = mahalanobis_distance(points, center, cov)
    threshold = float(chi2.ppf(chi2_quantile, df=2))

    mask = live_mask & pd.Series(distance <= threshold, index=df.index)
    return GateResult(
        mask,
        {
            "applied": 1.0,
            "n_live": float(n_live),
            "center_fsc_a": float(center[0]),
            "center_ssc_a": float(center[1]),
            "chi2_threshold": threshold,
        },
    )


def apply_gates(
    df: pd.DataFrame, config: Optional[GatingConfig] = None
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """Add ``id_live`` and ``id_size`` columns to a sample table."""
    config = config or GatingConfig()
    live = live_gate(df, fl1_threshold=config.fl1_threshold, fsc_quantile=config.fsc_quantile)
    size = size_gate(df, live.mask, chi2_quantile=config.chi2_quantile, min_events=config.min_events)

    gated = df.copy()
    gated["id_live"] = live.mask.to_numpy()
    gated["id_size"] = size.mask.to_numpy()
    params = {"live": live.params, "size": size.params}
    return gated, params
