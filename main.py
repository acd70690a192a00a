from __future__ import annotations

import csv
import json
import math
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import typer

from rrdb.config import AppConfig, load_config
from rrdb.core.errors import NonMonotonicWriteError
from rrdb.core.store import InsertOutcome, RingStore
from rrdb.core.timebox import to_utc
from rrdb.data.repository import SnapshotRepository
from rrdb.utils.logging import setup_logging


app = typer.Typer(add_completion=False)


def _parse_timestamp(raw: str) -> datetime:
    """Read an ISO 8601 or epoch-seconds timestamp as UTC.

    Raises ``ValueError`` for anything that is not a representable instant.
    """
    raw = raw.strip()
    try:
        seconds = float(raw)
    except ValueError:
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(raw))
    try:
        return to_utc(seconds)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError(f"epoch timestamp {raw!r} out of range") from exc


def _parse_row(row: List[str]) -> Tuple[datetime, float]:
    if len(row) < 2:
        raise ValueError("expected timestamp,value")
    value = float(row[1])
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {row[1]!r}")
    return _parse_timestamp(row[0]), value


def _open_repository(cfg: AppConfig) -> SnapshotRepository:
    return SnapshotRepository(cfg.env.RRDB_SNAPSHOT_DIR, size_limit=cfg.env.RRDB_CACHE_SIZE_LIMIT)


@app.command()
def ingest(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV of timestamp,value rows"),
    name: str = typer.Argument(..., help="Snapshot name to create or extend"),
    resolution: Optional[int] = typer.Option(None, help="Seconds per timebox for a new store"),
    capacity: Optional[int] = typer.Option(None, help="Timeboxes kept by a new store"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
) -> None:
    """Fold CSV samples into a stored snapshot.

    Timestamps are ISO 8601 (naive means UTC) or epoch seconds. A header row
    and rows that fail to parse are skipped. With ``strict_writes`` the first
    out-of-order row stops the run; rows before it are still saved.
    """
    cfg = load_config(config)
    setup_logging(cfg.env.LOG_LEVEL)
    failure: Optional[NonMonotonicWriteError] = None
    with _open_repository(cfg) as repo:
        store = repo.load(name, validate=cfg.runtime.validate_snapshots)
        if store is None:
            store = RingStore(
                resolution or cfg.runtime.store.resolution,
                capacity or cfg.runtime.store.capacity,
            )
        accepted = rejected = skipped = 0
        with open(csv_path, "r", encoding="utf-8", newline="") as fh:
            for line_no, row in enumerate(csv.reader(fh), start=1):
                try:
                    ts, value = _parse_row(row)
                except ValueError:
                    skipped += 1
                    continue
                try:
                    outcome = store.insert_at(value, ts, strict=cfg.runtime.strict_writes)
                except NonMonotonicWriteError as exc:
                    rejected += 1
                    failure = exc
                    typer.echo(f"{csv_path}:{line_no}: {exc}", err=True)
                    break
                if outcome is InsertOutcome.REJECTED_NON_MONOTONIC:
                    rejected += 1
                else:
                    accepted += 1
        repo.save(name, store)
    typer.echo(f"{name}: accepted={accepted} rejected={rejected} skipped={skipped} length={store.length()}")
    if failure is not None:
        raise typer.Exit(code=1)


@app.command()
def dump(
    name: str = typer.Argument(..., help="Snapshot name"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
) -> None:
    """Print the raw internal state of a stored snapshot."""
    cfg = load_config(config)
    with _open_repository(cfg) as repo:
        store = repo.load(name, validate=cfg.runtime.validate_snapshots)
    if store is None:
        typer.echo(f"No snapshot named {name!r}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(store.describe(), indent=2))


@app.command("show-config")
def show_config(config: Optional[Path] = typer.Option(None, help="Path to config.yaml")) -> None:
    cfg = load_config(config)
    typer.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    app()
