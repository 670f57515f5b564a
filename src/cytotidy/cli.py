"""Typer-powered CLI for cytotidy.

Commands:
- `generate`: Builds the synthetic three-sample dataset (or the samples of a
  YAML configuration), gates it and writes the event and summary tables to
  a DuckDB database.
- `verify`: Loads a generated database and logs the verification report.
- `tidy`: Reads FCS files into a flowset and writes them as one flat table.
- `validate`: Validates a YAML configuration without generating anything.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from cytotidy import __version__
from cytotidy.config import default_config, load_and_validate_config
from cytotidy.dataset import build_dataset, write_dataset
from cytotidy.exceptions import CytotidyError
from cytotidy.log_config import setup_logging
from cytotidy.store import EventStore
from cytotidy.tidy import flowset_to_frame, read_flowset
from cytotidy.utils import save_dataframe
from cytotidy.verify import load_dataset, log_report, verify_dataset

app = typer.Typer(add_completion=False, help="Flat flowSet tables and synthetic flow cytometry data")
logger = logging.getLogger("cytotidy")

LOG_DIR_OPTION = typer.Option(Path("logs"), "--log-dir", help="Directory for the log file.")
LOG_LEVEL_OPTION = typer.Option("INFO", "--log-level", help="Logging level.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    pass


@app.command()
def generate(
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, help="YAML generator configuration."),
    db: Optional[Path] = typer.Option(None, "--db", help="DuckDB database file (overrides the config)."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed (overrides the config)."),
    export: Optional[Path] = typer.Option(None, "--export", help="Also write flow_data.parquet and flow_summary.csv here."),
    log_dir: Path = LOG_DIR_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Generate the synthetic dataset and load it into DuckDB."""
    setup_logging(log_dir, log_level)
    try:
        cfg = load_and_validate_config(config) if config else default_config()
        if seed is not None:
            cfg.seed = seed
        database = db or cfg.store.database

        dataset = build_dataset(cfg.samples, seed=cfg.seed, gating=cfg.gating)
        with EventStore(database) as store:
            write_dataset(dataset, store, cfg.store.events_table, cfg.store.summary_table)

        if export is not None:
            save_dataframe(dataset.events, export / f"{cfg.store.events_table}.parquet")
            save_dataframe(dataset.summary, export / f"{cfg.store.summary_table}.csv")
    except CytotidyError as e:
        logger.error(f"Generation failed: {e}")
        raise typer.Exit(1)
    logger.info(f"Dataset written to {database}")


@app.command()
def verify(
    db: Path = typer.Option(..., "--db", exists=True, help="DuckDB database produced by `generate`."),
    events_table: str = typer.Option("flow_data", "--events-table"),
    summary_table: str = typer.Option("flow_summary", "--summary-table"),
    log_dir: Path = LOG_DIR_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Log sanity checks for a generated dataset."""
    setup_logging(log_dir, log_level)
    try:
        with EventStore(db, read_only=True) as store:
            events, summary = load_dataset(store, events_table, summary_table)
        log_report(verify_dataset(events, summary))
    except CytotidyError as e:
        logger.error(f"Verification failed: {e}")
        raise typer.Exit(1)


@app.command()
def tidy(
    fcs_files: List[Path] = typer.Argument(..., exists=True, help="FCS files, one per sample."),
    out: Path = typer.Option(..., "--out", "-o", help="Output table (.parquet or .csv)."),
    log_dir: Path = LOG_DIR_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Flatten a set of FCS files into a single table."""
    setup_logging(log_dir, log_level)
    try:
        frame = flowset_to_frame(read_flowset(fcs_files))
        save_dataframe(frame, out)
    except CytotidyError as e:
        logger.error(f"Failed to flatten flowset: {e}")
        raise typer.Exit(1)
    logger.info(f"Wrote {len(frame)} events -> {out}")


@app.command()
def validate(
    config: Path = typer.Option(..., "--config", "-c", exists=True, help="YAML generator configuration."),
    log_dir: Path = LOG_DIR_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Validate a generator configuration file."""
    setup_logging(log_dir, log_level)
    try:
        cfg = load_and_validate_config(config)
    except CytotidyError as e:
        logger.error(f"Validation failed: {e}")
        raise typer.Exit(1)
    logger.info(f"Configuration is valid: {len(cfg.samples)} samples, seed {cfg.seed}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
