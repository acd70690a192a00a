from __future__ import annotations

from pathlib import Path

import pytest

from rrdb.config import AppConfig, RuntimeConfig, load_config


def test_defaults() -> None:
    runtime = RuntimeConfig()
    assert runtime.store.resolution == 60
    assert runtime.store.capacity == 1440
    assert runtime.validate_snapshots is True
    assert runtime.strict_writes is False


def test_yaml_and_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("store:\n  resolution: 30\n  capacity: 10\nstrict_writes: true\n", encoding="utf-8")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("RRDB_SNAPSHOT_DIR", str(tmp_path / "snaps"))

    cfg = load_config(path)
    assert isinstance(cfg, AppConfig)
    assert cfg.runtime.store.resolution == 30
    assert cfg.runtime.store.capacity == 10
    assert cfg.runtime.strict_writes is True
    assert cfg.env.LOG_LEVEL == "DEBUG"
    assert cfg.env.RRDB_SNAPSHOT_DIR == str(tmp_path / "snaps")


def test_invalid_yaml_values(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("store:\n  resolution: 0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        load_config(path)
