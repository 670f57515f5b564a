"""DuckDB-backed table store for generated datasets."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

import duckdb
import pandas as pd

from cytotidy.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MEMORY = ":memory:"


def _check_table_name(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValidationError(f"Invalid table name: {name!r}")
    return name


class EventStore:
    """Thin wrapper around a DuckDB connection.

    Only two operations touch the data: :meth:`create_or_replace_table` and
    :meth:`query`. A table is valid once ``create_or_replace_table`` returns.
    """

    def __init__(self, database: str | Path = MEMORY, read_only: bool = False) -> None:
        self.database = str(database)
        if self.database != MEMORY and not read_only:
            Path(self.database).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = duckdb.connect(database=self.database, read_only=read_only)
        except duckdb.Error as e:
            raise StoreError(f"Failed to open database {self.database}: {e}") from e
        logger.debug(f"Opened DuckDB database {self.database} (read_only={read_only})")

    def create_or_replace_table(self, name: str, frame: pd.DataFrame) -> None:
        _check_table_name(name)
        view = f"_cytotidy_{name}_frame"
        try:
            self._conn.register(view, frame)
            try:
                self._conn.execute(f'CREATE OR REPLACE TABLE "{name}" AS SELECT * FROM "{view}"')
            finally:
                self._conn.unregister(view)
        except duckdb.Error as e:
            raise StoreError(f"Failed to write table {name}: {e}") from e
        logger.info(f"Stored {len(frame)} rows in table '{name}'")

    def query(self, sql: str) -> pd.DataFrame:
        try:
            return self._conn.execute(sql).df()
        except duckdb.Error as e:
            raise StoreError(f"Query failed: {e}") from e

    def table_names(self) -> List[str]:
        return sorted(self.query("SHOW TABLES")["name"].tolist())

    def read_table(self, name: str) -> pd.DataFrame:
        _check_table_name(name)
        return self.query(f'SELECT * FROM "{name}"')

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "EventStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
