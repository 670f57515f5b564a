"""Convert a flowSet (per-sample event tables) to and from one flat table."""

from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

import flowkit as fk
import numpy as np
import pandas as pd

from cytotidy.exceptions import FileOperationError, ValidationError

logger = logging.getLogger(__name__)

FlowSetMember = Union[pd.DataFrame, fk.Sample]


def sample_to_frame(sample: fk.Sample) -> pd.DataFrame:
    """Raw events of a FlowKit sample labelled by PnN channel names."""
    events = sample.get_events(source="raw")
    return pd.DataFrame(np.asarray(events, dtype=float), columns=list(sample.pnn_labels))


def _member_frame(sample_id: str, member: FlowSetMember) -> pd.DataFrame:
    if isinstance(member, fk.Sample):
        return sample_to_frame(member)
    if isinstance(member, pd.DataFrame):
        return member.reset_index(drop=True)
    raise ValidationError(
        f"Sample {sample_id!r} must be a DataFrame or flowkit.Sample, got {type(member).__name__}"
    )


def flowset_to_frame(
    flowset: Mapping[str, FlowSetMember],
    sample_col: str = "sample_id",
    event_col: str = "event_id",
) -> pd.DataFrame:
    """Stack per-sample event tables into one table.

    The result has ``sample_col`` and a 1-based ``event_col`` first, followed
    by the channels in the order of the first sample. Every sample must carry
    the same set of channels.
    """
    if not flowset:
        raise ValidationError("Cannot convert an empty flowset")

    frames = []
    channels: Optional[list] = None
    for sample_id, member in flowset.items():
        if not isinstance(sample_id, str) or not sample_id:
            raise ValidationError(f"Sample identifiers must be non-empty strings, got {sample_id!r}")
        frame = _member_frame(sample_id, member)

        reserved = {sample_col, event_col} & set(frame.columns)
        if reserved:
            raise ValidationError(f"Sample {sample_id!r} has columns clashing with id columns: {sorted(reserved)}")

        if channels is None:
            channels = list(frame.columns)
        elif set(frame.columns) != set(channels):
            extra = sorted(set(frame.columns) - set(channels))
            missing = sorted(set(channels) - set(frame.columns))
            raise ValidationError(
                f"Sample {sample_id!r} channels differ from the first sample "
                f"(missing: {missing}, unexpected: {extra})"
            )

        frame = frame[channels].copy()
        frame.insert(0, event_col, np.arange(1, len(frame) + 1, dtype=np.int64))
        frame.insert(0, sample_col, sample_id)
        frames.append(frame)

    flat = pd.concat(frames, ignore_index=True)
    logger.debug(f"Flattened {len(frames)} samples into {len(flat)} events")
    return flat


def frame_to_flowset(
    frame: pd.DataFrame,
    sample_col: str = "sample_id",
    event_col: str = "event_id",
) -> "OrderedDict[str, pd.DataFrame]":
    """Split a flat table back into per-sample tables, in first-appearance order."""
    if sample_col not in frame.columns:
        raise ValidationError(f"Column {sample_col!r} not found in table")
    drop = [c for c in (sample_col, event_col) if c in frame.columns]
    flowset: "OrderedDict[str, pd.DataFrame]" = OrderedDict()
    for sample_id, group in frame.groupby(sample_col, sort=False):
        flowset[sample_id] = group.drop(columns=drop).reset_index(drop=True)
    return flowset


def read_flowset(paths: Iterable[Union[str, Path]], sample_ids: Optional[Iterable[str]] = None) -> Dict[str, fk.Sample]:
    """Read FCS files into an ordered flowset keyed by sample id (file stem by default)."""
    paths = [Path(p) for p in paths]
    ids = list(sample_ids) if sample_ids is not None else [p.stem for p in paths]
    if len(ids) != len(paths):
        raise ValidationError(f"Got {len(ids)} sample ids for {len(paths)} files")
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate sample ids: {duplicates}")

    flowset: Dict[str, fk.Sample] = {}
    for sample_id, path in zip(ids, paths):
        try:
            flowset[sample_id] = fk.Sample(str(path), sample_id=sample_id)
        except Exception as e:
            raise FileOperationError(f"Failed to read FCS file {path}") from e
        logger.info(f"Read {flowset[sample_id].event_count} events from {path}")
    return flowset
