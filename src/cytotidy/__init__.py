"""cytotidy: flat tables from flowSets and synthetic gated flow cytometry data."""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("cytotidy")
except importlib.metadata.PackageNotFoundError:
    __version__ = "unknown"

from cytotidy.config import DEFAULT_SAMPLE_CONFIGS, GeneratorConfig, SampleConfig
from cytotidy.dataset import Dataset, build_dataset, summarize_dataset, write_dataset
from cytotidy.gate import apply_gates
from cytotidy.generate import generate_sample
from cytotidy.store import EventStore
from cytotidy.tidy import flowset_to_frame, frame_to_flowset, read_flowset

__all__ = [
    "DEFAULT_SAMPLE_CONFIGS",
    "Dataset",
    "EventStore",
    "GeneratorConfig",
    "SampleConfig",
    "apply_gates",
    "build_dataset",
    "flowset_to_frame",
    "frame_to_flowset",
    "generate_sample",
    "read_flowset",
    "summarize_dataset",
    "write_dataset",
]
