"""Population samplers for synthetic flow cytometry events.

Every sampler is a pure function of its count, its distribution parameters
and the ``numpy.random.Generator`` passed in. Draws happen in the order the
arguments are listed in each function so that a seeded generator always
reproduces the same events.
"""

from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd

CHANNELS = ["FSC-A", "SSC-A", "FSC-H", "FL1-A", "FL2-A", "FL3-A"]

DEBRIS = "debris"
DEAD = "dead"
LIVE_SINGLET = "live_singlet"
DOUBLET = "doublet"
OUTLIER_SUFFIX = "_outlier"

LIVE_POPULATIONS = (LIVE_SINGLET, DOUBLET)

LIVE_FL1_MEAN, LIVE_FL1_SD = 500.0, 0.4
DEAD_FL1_MEAN, DEAD_FL1_SD = 50000.0, 0.3
MARKER_POS_MEAN, MARKER_POS_SD = 15000.0, 0.4
MARKER_NEG_MEAN, MARKER_NEG_SD = 300.0, 0.3


def _lognormal(rng: np.random.Generator, n: int, mean: float, sd: float) -> np.ndarray:
    """Log-normal draws parameterised by the median on the linear scale."""
    return rng.lognormal(mean=np.log(mean), sigma=sd, size=n)


def singlet_scatter(rng: np.random.Generator, n: int, fsc_mean: float, fsc_sd: float) -> Dict[str, np.ndarray]:
    """FSC-A/FSC-H for single cells; height tracks area tightly."""
    fsc_a = _lognormal(rng, n, fsc_mean, fsc_sd)
    fsc_h = fsc_a * rng.normal(0.85, 0.05, size=n)
    return {"FSC-A": fsc_a, "FSC-H": fsc_h}


def doublet_scatter(rng: np.random.Generator, n: int, fsc_mean: float, fsc_sd: float) -> Dict[str, np.ndarray]:
    """FSC-A/FSC-H for two cells passing together; area is high for the height."""
    fsc_h = _lognormal(rng, n, fsc_mean * 0.7, fsc_sd)
    fsc_a = fsc_h * rng.normal(1.5, 0.1, size=n)
    return {"FSC-A": fsc_a, "FSC-H": fsc_h}


def debris_scatter(rng: np.random.Generator, n: int) -> Dict[str, np.ndarray]:
    """Low, noisy and uncorrelated light scatter."""
    fsc_a = _lognormal(rng, n, 5000, 0.5)
    ssc_a = _lognormal(rng, n, 3000, 0.5)
    fsc_h = fsc_a * rng.normal(0.7, 0.2, size=n)
    return {"FSC-A": fsc_a, "SSC-A": ssc_a, "FSC-H": fsc_h}


def live_viability(rng: np.random.Generator, n: int) -> np.ndarray:
    return _lognormal(rng, n, LIVE_FL1_MEAN, LIVE_FL1_SD)


def dead_viability(rng: np.random.Generator, n: int) -> np.ndarray:
    return _lognormal(rng, n, DEAD_FL1_MEAN, DEAD_FL1_SD)


def marker(rng: np.random.Generator, n: int, pct_positive: float) -> np.ndarray:
    """Two-component marker mixture, shuffled so order says nothing about positivity."""
    n_pos = int(round(n * pct_positive))
    n_neg = n - n_pos
    neg = _lognormal(rng, n_neg, MARKER_NEG_MEAN, MARKER_NEG_SD)
    pos = _lognormal(rng, n_pos, MARKER_POS_MEAN, MARKER_POS_SD)
    return rng.permutation(np.concatenate([neg, pos]))


def _block(population: str, channels: Dict[str, np.ndarray]) -> pd.DataFrame:
    block = pd.DataFrame({name: np.asarray(channels[name], dtype=float) for name in CHANNELS})
    block["population"] = population
    return block


def debris_block(rng: np.random.Generator, n: int) -> pd.DataFrame:
    channels = debris_scatter(rng, n)
    channels["FL1-A"] = live_viability(rng, n)
    channels["FL2-A"] = _lognormal(rng, n, 200, 0.4)
    channels["FL3-A"] = _lognormal(rng, n, 200, 0.4)
    return _block(DEBRIS, channels)


def dead_block(
    rng: np.random.Generator, n: int, fsc_mean: float, fsc_sd: float, ssc_mean: float, ssc_sd: float
) -> pd.DataFrame:
    channels = singlet_scatter(rng, n, fsc_mean * 0.85, fsc_sd)
    channels["SSC-A"] = _lognormal(rng, n, ssc_mean * 0.9, ssc_sd)
    channels["FL1-A"] = dead_viability(rng, n)
    channels["FL2-A"] = _lognormal(rng, n, 400, 0.3)
    channels["FL3-A"] = _lognormal(rng, n, 400, 0.3)
    return _block(DEAD, channels)


def singlet_block(
    rng: np.random.Generator,
    n: int,
    fsc_mean: float,
    fsc_sd: float,
    ssc_mean: float,
    ssc_sd: float,
    fl2_positive_pct: float,
    fl3_positive_pct: float,
) -> pd.DataFrame:
    channels = singlet_scatter(rng, n, fsc_mean, fsc_sd)
    channels["SSC-A"] = _lognormal(rng, n, ssc_mean, ssc_sd)
    channels["FL1-A"] = live_viability(rng, n)
    channels["FL2-A"] = marker(rng, n, fl2_positive_pct)
    channels["FL3-A"] = marker(rng, n, fl3_positive_pct)
    return _block(LIVE_SINGLET, channels)


def doublet_block(
    rng: np.random.Generator,
    n: int,
    fsc_mean: float,
    fsc_sd: float,
    ssc_mean: float,
    ssc_sd: float,
    fl2_positive_pct: float,
    fl3_positive_pct: float,
) -> pd.DataFrame:
    channels = doublet_scatter(rng, n, fsc_mean, fsc_sd)
    channels["SSC-A"] = _lognormal(rng, n, ssc_mean * 1.1, ssc_sd)
    channels["FL1-A"] = live_viability(rng, n)
    channels["FL2-A"] = marker(rng, n, fl2_positive_pct)
    channels["FL3-A"] = marker(rng, n, fl3_positive_pct)
    return _block(DOUBLET, channels)


def base_population(label: str) -> str:
    """Strip the outlier suffix from a population label."""
    if label.endswith(OUTLIER_SUFFIX):
        return label[: -len(OUTLIER_SUFFIX)]
    return label
