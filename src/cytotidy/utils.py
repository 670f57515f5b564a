"""Shared utility helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import pandas as pd

from cytotidy.exceptions import FileOperationError


def save_dataframe(df: pd.DataFrame, path: Union[Path, str]) -> Path:
    """Save ``df`` as Parquet when the suffix is ``.parquet``, otherwise as CSV.

    Missing parent directories are created. Returns the written path.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix == ".parquet":
            df.to_parquet(path, index=False)
        else:
            df.to_csv(path, index=False)
    except OSError as e:
        raise FileOperationError(f"Could not write table to {path}: {e}") from e
    return path
