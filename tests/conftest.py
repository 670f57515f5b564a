from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from cytotidy.config import SampleConfig
from cytotidy.dataset import build_dataset

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(scope="session")
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    return project_root / "configs" / "example_config.yaml"


@pytest.fixture(autouse=True)
def _reset_cytotidy_logger():
    """Drop handlers installed by setup_logging so they do not leak between tests."""
    yield
    logger = logging.getLogger("cytotidy")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)


@pytest.fixture
def healthy_config() -> SampleConfig:
    return SampleConfig(
        sample_id="Healthy", n_events=2000, debris_pct=0.02, dead_pct=0.05,
        singlet_pct=0.95, fsc_mean=100000, fsc_sd=0.25, ssc_mean=60000, ssc_sd=0.35,
        fl2_positive_pct=0.5, fl3_positive_pct=0.3, outlier_pct=0.005,
    )


@pytest.fixture
def small_configs() -> list[SampleConfig]:
    return [
        SampleConfig(
            sample_id="A", n_events=1500, debris_pct=0.02, dead_pct=0.05,
            singlet_pct=0.95, fsc_mean=100000, fsc_sd=0.25, ssc_mean=60000, ssc_sd=0.35,
            fl2_positive_pct=None, fl3_positive_pct=None, outlier_pct=0.005,
        ),
        SampleConfig(
            sample_id="B", n_events=1000, debris_pct=0.05, dead_pct=0.9,
            singlet_pct=0.85, fsc_mean=90000, fsc_sd=0.3, ssc_mean=55000, ssc_sd=0.4,
            fl2_positive_pct=0.3, fl3_positive_pct=0.3, outlier_pct=0.005,
        ),
    ]


@pytest.fixture
def small_dataset(small_configs):
    return build_dataset(small_configs, seed=7)


@pytest.fixture
def small_config_yaml(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "seed: 11\n"
        "store:\n"
        f"  database: {tmp_path / 'store.duckdb'}\n"
        "samples:\n"
        "  - sample_id: S1\n"
        "    n_events: 500\n"
        "    debris_pct: 0.02\n"
        "    dead_pct: 0.05\n"
        "    singlet_pct: 0.95\n"
        "    fsc_mean: 100000\n"
        "    fsc_sd: 0.25\n"
        "    ssc_mean: 60000\n"
        "    ssc_sd: 0.35\n"
        "    outlier_pct: 0.01\n"
    )
    return path


@pytest.fixture
def gate_frame():
    """Factory for minimal tables carrying the columns the gates read."""

    def _make(populations, fsc, ssc, fl1) -> pd.DataFrame:
        return pd.DataFrame({
            "population": populations,
            "FSC-A": np.asarray(fsc, dtype=float),
            "SSC-A": np.asarray(ssc, dtype=float),
            "FL1-A": np.asarray(fl1, dtype=float),
        })

    return _make
