from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import main
from rrdb.core.errors import NonMonotonicWriteError


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RRDB_SNAPSHOT_DIR", str(tmp_path / "snaps"))
    # keep the JSON handler off the runner's captured stdout
    monkeypatch.setattr(main, "setup_logging", lambda level="INFO": None)


def test_ingest_then_dump(tmp_path: Path) -> None:
    csv_path = tmp_path / "samples.csv"
    csv_path.write_text(
        "\n".join(
            [
                "timestamp,value",
                "2013-01-01T08:10:01Z,5",
                "2013-01-01T08:10:30Z,5",
                "2013-01-01T08:10:20Z,99",
                "1357027860,7",
            ]
        ),
        encoding="utf-8",
    )

    result = runner.invoke(main.app, ["ingest", str(csv_path), "cpu", "--resolution", "30", "--capacity", "10"])
    assert result.exit_code == 0, result.output
    assert "accepted=3 rejected=1 skipped=1 length=3" in result.output

    result = runner.invoke(main.app, ["dump", "cpu"])
    assert result.exit_code == 0, result.output
    dump = json.loads(result.output)
    assert dump["res"] == 30
    assert dump["cap"] == 10
    assert dump["len"] == 3
    assert dump["head"] == 0
    assert dump["tail"] == 2
    assert dump["data"][:3] == [5.0, 7.0, 7.0]
    assert dump["start"] == "2013-01-01T08:11:00+00:00"


def test_dump_missing_snapshot() -> None:
    result = runner.invoke(main.app, ["dump", "nope"])
    assert result.exit_code == 1


def test_show_config() -> None:
    result = runner.invoke(main.app, ["show-config"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["runtime"]["store"]["resolution"] == 60


def test_ingest_skips_unrepresentable_rows(tmp_path: Path) -> None:
    csv_path = tmp_path / "samples.csv"
    csv_path.write_text(
        "1357027801,5\ninf,3\nnan,3\n1e30,3\n1357027802,nan\n2013-13-01T00:00:00,1\n1357027900,4\n",
        encoding="utf-8",
    )

    result = runner.invoke(main.app, ["ingest", str(csv_path), "cpu", "--resolution", "30", "--capacity", "10"])
    assert result.exit_code == 0, result.output
    assert "accepted=2 rejected=0 skipped=5 length=4" in result.output

    dump = json.loads(runner.invoke(main.app, ["dump", "cpu"]).output)
    assert dump["data"][:4] == [5.0, 0.0, 0.0, 4.0]


def test_ingest_strict_stops_at_out_of_order_row(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("strict_writes: true\n", encoding="utf-8")
    csv_path = tmp_path / "samples.csv"
    csv_path.write_text("1357027801,5\n1357027700,3\n1357027900,4\n", encoding="utf-8")

    result = runner.invoke(main.app, ["ingest", str(csv_path), "cpu", "--resolution", "30", "--capacity", "10"])
    assert result.exit_code == 1
    assert not isinstance(result.exception, NonMonotonicWriteError)
    assert "accepted=1 rejected=1 skipped=0 length=1" in result.output

    # rows before the failure are kept, the ones after it are not read
    dump = json.loads(runner.invoke(main.app, ["dump", "cpu"]).output)
    assert dump["len"] == 1
    assert dump["data"][0] == 5.0
    assert dump["last"] == "2013-01-01T08:10:01+00:00"
