from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from cytotidy.config import DEFAULT_SAMPLE_CONFIGS, SampleConfig
from cytotidy.dataset import (
    SUMMARY_COLUMNS,
    build_dataset,
    resolve_configs,
    summarize_dataset,
    write_dataset,
)
from cytotidy.exceptions import ConfigurationError, ValidationError
from cytotidy.store import EventStore

EVENT_TABLE_COLUMNS = [
    "sample_id", "event_id", "FSC-A", "SSC-A", "FSC-H", "FL1-A", "FL2-A", "FL3-A",
    "population", "id_live", "id_size",
]


def test_dataset_columns_and_order(small_dataset) -> None:
    events = small_dataset.events
    assert list(events.columns) == EVENT_TABLE_COLUMNS
    assert events["sample_id"].unique().tolist() == ["A", "B"]
    assert (events["sample_id"] == "A").sum() == 1500
    for _, frame in events.groupby("sample_id"):
        assert frame["event_id"].tolist() == list(range(1, len(frame) + 1))


def test_same_seed_is_bit_identical(small_configs) -> None:
    first = build_dataset(small_configs, seed=99)
    second = build_dataset(small_configs, seed=99)
    pd.testing.assert_frame_equal(first.events, second.events)
    pd.testing.assert_frame_equal(first.summary, second.summary)


def test_different_seeds_differ(small_configs) -> None:
    first = build_dataset(small_configs, seed=1)
    second = build_dataset(small_configs, seed=2)
    assert not np.array_equal(first.events["FSC-A"].to_numpy(), second.events["FSC-A"].to_numpy())


def test_explicit_generator_matches_seed(small_configs) -> None:
    from_seed = build_dataset(small_configs, seed=5)
    from_rng = build_dataset(small_configs, rng=np.random.default_rng(5))
    pd.testing.assert_frame_equal(from_seed.events, from_rng.events)


def test_resolve_configs_draws_marker_fractions_first(small_configs) -> None:
    resolved = resolve_configs(small_configs, np.random.default_rng(42))
    expected = np.random.default_rng(42).uniform(0.25, 0.75, size=2)
    assert resolved[0].fl2_positive_pct == pytest.approx(expected[0])
    assert resolved[0].fl3_positive_pct == pytest.approx(expected[1])
    assert resolved[1].fl2_positive_pct == 0.3
    assert all(c.is_resolved for c in resolved)
    assert small_configs[0].fl2_positive_pct is None


def test_invalid_configuration_rejected_before_generation() -> None:
    bad = {
        "sample_id": "Bad", "n_events": 100, "debris_pct": 0.6, "dead_pct": 0.6,
        "singlet_pct": 0.9, "fsc_mean": 1e5, "fsc_sd": 0.2, "ssc_mean": 6e4, "ssc_sd": 0.3,
    }
    with pytest.raises(ConfigurationError):
        build_dataset([bad], seed=1)


def test_rounding_edge_case_does_not_abort_later_samples(small_configs) -> None:
    edge = small_configs[1].model_copy(update={"sample_id": "Edge", "n_events": 3, "debris_pct": 0.5, "dead_pct": 0.5})
    dataset = build_dataset([small_configs[0], edge], seed=1)
    assert dataset.summary["total_events"].tolist() == [1500, 3]
    edge_events = dataset.events[dataset.events["sample_id"] == "Edge"]
    assert edge_events["event_id"].tolist() == [1, 2, 3]


def test_build_accepts_plain_dicts() -> None:
    config = DEFAULT_SAMPLE_CONFIGS[1].model_dump()
    config.update(n_events=300)
    dataset = build_dataset([config], seed=3)
    assert len(dataset.events) == 300


def test_summary_relation(small_dataset) -> None:
    summary = small_dataset.summary
    events = small_dataset.events
    assert list(summary.columns) == SUMMARY_COLUMNS
    assert summary["sample_id"].tolist() == ["A", "B"]
    assert summary["total_events"].tolist() == [1500, 1000]
    assert (summary["estimated_live_cells"] + summary["estimated_dead_cells"] == summary["total_events"]).all()

    a = events[events["sample_id"] == "A"]
    row = summary.iloc[0]
    assert row["mean_fsc_a"] == pytest.approx(a["FSC-A"].mean())
    assert row["sd_fsc_a"] == pytest.approx(a["FSC-A"].std(ddof=1))
    assert row["estimated_live_cells"] == (a["FL1-A"] < 5000).sum()


def test_failed_sample_summary_is_mostly_dead(small_dataset) -> None:
    row = small_dataset.summary.set_index("sample_id").loc["B"]
    assert row["estimated_dead_cells"] > 0.85 * row["total_events"]


def test_summarize_requires_channels() -> None:
    with pytest.raises(ValidationError):
        summarize_dataset(pd.DataFrame({"sample_id": ["x"], "FSC-A": [1.0]}))


def test_write_dataset_creates_both_relations(small_dataset) -> None:
    with EventStore() as store:
        write_dataset(small_dataset, store)
        assert store.table_names() == ["flow_data", "flow_summary"]
        counts = store.query("SELECT sample_id, count(*) AS n FROM flow_data GROUP BY sample_id ORDER BY sample_id")
        assert counts["n"].tolist() == [1500, 1000]
