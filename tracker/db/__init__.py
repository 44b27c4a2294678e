from __future__ import annotations

"""
tracker.db
==========

Storage facade for the tracker: KV backend selection plus the append-only
contract log built on top of it.

URIs
----
- "sqlite:///path/to/contract_tracker.db" → SQLite file
- "sqlite:///:memory:" / "memory://"      → in-memory SQLite (tests)
- bare path                               → SQLite file

>>> from tracker.db import open_kv, LogStore
>>> store = LogStore(open_kv("memory://"))
>>> store.append(b"{}")
1
"""

from typing import Tuple

from .kv import KV, Batch, ReadOnlyKV, from_le_u32, le_u32
from . import sqlite as _sqlite_backend
from .log_store import LogStore


def _parse_uri(uri: str) -> Tuple[str, str]:
    """Parse a DB URI into (backend, path)."""
    u = uri.strip()
    if u.startswith("sqlite:///"):
        return ("sqlite", u[len("sqlite:///") :])
    if u.startswith("memory://"):
        return ("memory", "")
    if "://" in u:
        raise ValueError(f"Unsupported DB backend in URI: {uri!r}")
    return ("sqlite", u)


def open_kv(uri: str, create: bool = True) -> KV:
    """
    Open a KV database by URI. See module docstring for supported forms.

    Raises:
        ValueError for unsupported schemes.
        FileNotFoundError when create=False and the file is missing.
    """
    backend, spec = _parse_uri(uri)
    if backend == "memory":
        return _sqlite_backend.open_sqlite_kv(":memory:")
    return _sqlite_backend.open_sqlite_kv(spec or ":memory:", create=create)


__all__ = [
    "KV",
    "ReadOnlyKV",
    "Batch",
    "LogStore",
    "le_u32",
    "from_le_u32",
    "open_kv",
]
