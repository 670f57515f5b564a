"""Pydantic models for sample and generator configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from cytotidy.exceptions import ConfigurationError

DEFAULT_SEED = 20260109


class SampleConfig(BaseModel):
    """Generation parameters for one synthetic sample.

    ``fl2_positive_pct``/``fl3_positive_pct`` may be left as ``None``; they are
    then drawn from Uniform(0.25, 0.75) by :func:`cytotidy.dataset.resolve_configs`.
    """

    sample_id: str = Field(min_length=1)
    n_events: int = Field(ge=1)
    debris_pct: float = Field(ge=0, le=1)
    dead_pct: float = Field(ge=0, le=1)
    singlet_pct: float = Field(ge=0, le=1)
    fsc_mean: float = Field(gt=0)
    fsc_sd: float = Field(gt=0)
    ssc_mean: float = Field(gt=0)
    ssc_sd: float = Field(gt=0)
    fl2_positive_pct: Optional[float] = Field(default=None, ge=0, le=1)
    fl3_positive_pct: Optional[float] = Field(default=None, ge=0, le=1)
    outlier_pct: float = Field(default=0.0, ge=0, le=1)

    @model_validator(mode="after")
    def _check_population_fractions(self) -> "SampleConfig":
        if self.debris_pct + self.dead_pct > 1:
            raise ValueError(
                f"debris_pct + dead_pct must not exceed 1 "
                f"(got {self.debris_pct} + {self.dead_pct})"
            )
        return self

    @property
    def is_resolved(self) -> bool:
        return self.fl2_positive_pct is not None and self.fl3_positive_pct is not None


class GatingConfig(BaseModel):
    fl1_threshold: float = 5000.0
    fsc_quantile: float = Field(0.99, gt=0, le=1)
    chi2_quantile: float = Field(0.99, gt=0, lt=1)
    min_events: int = Field(3, ge=3)


class StoreConfig(BaseModel):
    database: Path = Path("flow_cytometry_data.duckdb")
    events_table: str = "flow_data"
    summary_table: str = "flow_summary"


class GeneratorConfig(BaseModel):
    seed: Optional[int] = DEFAULT_SEED
    samples: list[SampleConfig] = Field(default_factory=list)
    gating: GatingConfig = Field(default_factory=GatingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("samples")
    @classmethod
    def _unique_sample_ids(cls, samples: list[SampleConfig]) -> list[SampleConfig]:
        seen: set[str] = set()
        for sample in samples:
            if sample.sample_id in seen:
                raise ValueError(f"Duplicate sample_id: {sample.sample_id}")
            seen.add(sample.sample_id)
        return samples


DEFAULT_SAMPLE_CONFIGS: list[SampleConfig] = [
    # Healthy sample, marker positivity drawn per run
    SampleConfig(
        sample_id="Sample1", n_events=20000, debris_pct=0.02, dead_pct=0.05,
        singlet_pct=0.95, fsc_mean=100000, fsc_sd=0.25, ssc_mean=60000, ssc_sd=0.35,
        fl2_positive_pct=None, fl3_positive_pct=None, outlier_pct=0.005,
    ),
    # Background marker signal only
    SampleConfig(
        sample_id="Sample2", n_events=20000, debris_pct=0.025, dead_pct=0.06,
        singlet_pct=0.96, fsc_mean=95000, fsc_sd=0.25, ssc_mean=58000, ssc_sd=0.35,
        fl2_positive_pct=0.05, fl3_positive_pct=0.05, outlier_pct=0.005,
    ),
    # Failed sample, mostly dead cells
    SampleConfig(
        sample_id="Sample3", n_events=20000, debris_pct=0.05, dead_pct=0.90,
        singlet_pct=0.85, fsc_mean=90000, fsc_sd=0.3, ssc_mean=55000, ssc_sd=0.4,
        fl2_positive_pct=0.3, fl3_positive_pct=0.3, outlier_pct=0.005,
    ),
]


def default_config() -> GeneratorConfig:
    return GeneratorConfig(samples=[s.model_copy() for s in DEFAULT_SAMPLE_CONFIGS])


def validate_sample_configs(configs: Iterable[SampleConfig | dict]) -> list[SampleConfig]:
    """Coerce and validate sample configurations before any generation starts."""
    validated: list[SampleConfig] = []
    for index, raw in enumerate(configs):
        try:
            config = raw if isinstance(raw, SampleConfig) else SampleConfig.model_validate(raw)
            # Re-run validators for instances built with model_construct
            validated.append(SampleConfig.model_validate(config.model_dump()))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sample configuration at position {index}:\n{e}") from e
    if not validated:
        raise ConfigurationError("At least one sample configuration is required")
    ids = [c.sample_id for c in validated]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate sample_id values: {duplicates}")
    return validated


def load_and_validate_config(config_path: Path) -> GeneratorConfig:
    """Loads and validates the YAML configuration file.

    A file without a ``samples`` section falls back to the default
    three-sample profile.
    """
    try:
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
        config = GeneratorConfig.model_validate(config_data)
    except FileNotFoundError:
        raise
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError(f"Error parsing or validating config file {config_path}:\n{e}") from e
    if not config.samples:
        config.samples = [s.model_copy() for s in DEFAULT_SAMPLE_CONFIGS]
    return config
