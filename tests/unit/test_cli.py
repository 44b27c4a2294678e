from __future__ import annotations

import json
from pathlib import Path

import pytest

from tracker import cli
from tracker.config import Config
from tracker.plugin import ContractTracker

from tests.fakes import FakeInvoker, FakeSnapshot, block, contract, diff


@pytest.fixture(autouse=True)
def _data_dir(_clean_env, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TRACKER_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def populated(cfg: Config) -> str:
    snap = FakeSnapshot()
    with ContractTracker(cfg, invoker=FakeInvoker()) as tr:
        for i in (10, 11, 11, 20):
            tr.on_persist(snap, block(i), [diff("Created", contract(i))], [])
    return cfg.db_uri


def test_dump_prints_json(populated: str, capsys, restore_root_logging):
    assert cli.main(["--db", populated, "--log-level", "ERROR", "dump", "--since", "11", "--max-blocks", "1"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert [o["blockindex"] for o in out] == [11, 11]


def test_dump_rejects_out_of_range(populated: str, capsys, restore_root_logging):
    rc = cli.main(["--db", populated, "--log-level", "ERROR", "dump", "--since", str(2**31)])
    assert rc == 2
    assert "invalid" in capsys.readouterr().err


def test_stats(populated: str, capsys, restore_root_logging):
    assert cli.main(["--db", populated, "--log-level", "ERROR", "stats"]) == 0
    assert json.loads(capsys.readouterr().out) == {"blocks": 3, "records": 4, "lastSequenceId": 4}


def test_bad_config_exits_with_usage_code(tmp_path: Path, capsys):
    rc = cli.main(["--config", str(tmp_path / "missing.toml"), "stats"])
    assert rc == 2
    assert "config error" in capsys.readouterr().err


def test_serve_hands_tracker_to_uvicorn(populated: str, monkeypatch, restore_root_logging):
    seen = {}

    def fake_serve(cfg, tracker):
        seen["port"] = cfg.rpc.port
        seen["stats"] = tracker.stats()

    monkeypatch.setattr("tracker.rpc.server.serve", fake_serve)
    assert cli.main(["--db", populated, "--log-level", "ERROR", "serve", "--port", "9999"]) == 0
    assert seen == {"port": 9999, "stats": {"blocks": 3, "records": 4, "lastSequenceId": 4}}
