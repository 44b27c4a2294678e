"""
Shared pytest fixtures:
- Isolated TRACKER_* environment per test
- Config pointing at a temporary data dir / SQLite file
- In-memory and file-backed KV stores
- A tracker wired to a scripted invoker
"""
from __future__ import annotations

import logging
import os
import typing as t
from pathlib import Path

import pytest

from tests.fakes import FakeInvoker, FakeSnapshot
from tracker.config import Config, load_config
from tracker.db import LogStore, open_kv
from tracker.plugin import ContractTracker
from tracker.types.record import validate_record_bytes


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("TRACKER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def cfg(tmp_path: Path) -> Config:
    return load_config(
        overrides={
            "paths": {"data_dir": str(tmp_path / "data")},
            "log": {"level": "DEBUG", "format": "text"},
        },
        env={},
    )


@pytest.fixture
def kv():
    db = open_kv("memory://")
    yield db
    db.close()


@pytest.fixture
def store(kv) -> LogStore:
    return LogStore(kv, validator=validate_record_bytes)


@pytest.fixture
def invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def snapshot() -> FakeSnapshot:
    return FakeSnapshot()


@pytest.fixture
def tracker(cfg: Config, invoker: FakeInvoker) -> t.Iterator[ContractTracker]:
    with ContractTracker(cfg, invoker=invoker) as tr:
        yield tr


@pytest.fixture
def restore_root_logging() -> t.Iterator[None]:
    """Undo `tracker.logging.configure()` on the root logger after the test."""
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in before and type(h) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
