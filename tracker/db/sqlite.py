from __future__ import annotations

"""
SQLite-backed KV store
======================

Embedded KV on stdlib `sqlite3` (BLOB keys & values), implementing the
`KV` / `ReadOnlyKV` / `Batch` protocols from `tracker.db.kv`.

- Table schema: kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)
- Autocommit connection: a single `put` is its own transaction, so once it
  returns the row is on disk (with `synchronous=FULL`, also across power loss).
- Batches run inside one explicit transaction.

Threading: `check_same_thread=False`; a connection-level lock serializes
statements so the RPC thread pool can read while the host thread writes.
"""

import os
import sqlite3
import threading
from typing import Iterator, Optional, Tuple, Union

from .kv import KV, Batch

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "FULL",  # appends must survive a crash once put() returns
    "temp_store": "MEMORY",
    "foreign_keys": "OFF",
}

PathLike = Union[str, bytes, "os.PathLike[str]", "os.PathLike[bytes]"]


def _apply_pragmas(conn: sqlite3.Connection, pragmas: Optional[dict] = None) -> None:
    p = dict(DEFAULT_PRAGMAS)
    if pragmas:
        p.update(pragmas)
    cur = conn.cursor()
    cur.execute("PRAGMA journal_mode=%s" % p["journal_mode"])
    cur.execute("PRAGMA synchronous=%s" % p["synchronous"])
    cur.execute("PRAGMA temp_store=%s" % p["temp_store"])
    cur.execute("PRAGMA foreign_keys=%s" % p["foreign_keys"])
    cur.close()


def _migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            k BLOB PRIMARY KEY,
            v BLOB NOT NULL
        )
        """
    )


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte string strictly greater than every key starting with
    `prefix`, or None when no finite bound exists (empty or all-0xFF prefix).

    Example: b"ab\\x01" -> b"ab\\x02"; b"\\xff\\xff" -> None
    """
    if not prefix:
        return None
    p = bytearray(prefix)
    for i in range(len(p) - 1, -1, -1):
        if p[i] != 0xFF:
            p[i] += 1
            del p[i + 1 :]
            return bytes(p)
    return None


class SQLiteBatch(Batch):
    __slots__ = ("_kv", "_open")

    def __init__(self, kv: "SQLiteKV") -> None:
        self._kv = kv
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._kv._lock.acquire()
        try:
            self._kv._conn.execute("BEGIN IMMEDIATE")
        except Exception:
            self._kv._lock.release()
            raise
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._kv._conn.execute(
            "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
            (memoryview(key), memoryview(value)),
        )

    def delete(self, key: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._kv._conn.execute("DELETE FROM kv WHERE k = ?", (memoryview(key),))

    def _finish(self, sql: str) -> None:
        if not self._open:
            return
        try:
            self._kv._conn.execute(sql)
        finally:
            self._open = False
            self._kv._lock.release()

    def commit(self) -> None:
        self._finish("COMMIT")

    def rollback(self) -> None:
        self._finish("ROLLBACK")

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


def _open_connection(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> sqlite3.Connection:
    path_str = os.fsdecode(path)
    if path_str.startswith("sqlite:///"):
        path_str = path_str[len("sqlite:///") :] or ":memory:"
    if path_str != ":memory:":
        if not create and not os.path.exists(path_str):
            raise FileNotFoundError(f"SQLite KV not found at {path_str}")
        parent = os.path.dirname(os.path.abspath(path_str))
        if create:
            os.makedirs(parent, exist_ok=True)

    conn = sqlite3.connect(
        path_str,
        detect_types=0,
        isolation_level=None,  # autocommit; batches BEGIN explicitly
        check_same_thread=False,
    )
    _apply_pragmas(conn, pragmas)
    _migrate(conn)
    return conn


class SQLiteKV(KV):
    """
    SQLite-backed KV. Safe for multi-threaded access: every statement runs
    under the instance lock. Use `open_sqlite_kv(path)` to construct.
    """

    __slots__ = ("_conn", "_lock", "_closed")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()
        self._closed = False

    # --- ReadOnlyKV ---

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute(
                "SELECT v FROM kv WHERE k = ?", (memoryview(key),)
            ).fetchone()
        return bytes(row[0]) if row is not None else None

    def has(self, key: bytes) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM kv WHERE k = ? LIMIT 1", (memoryview(key),)
            ).fetchone()
        return row is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """
        Keys with the given binary prefix in lexicographic order. Rows are
        materialized under the lock so concurrent writers never interleave.
        """
        hi = _prefix_hi(prefix)
        if hi is not None:
            sql = "SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k"
            args: tuple = (memoryview(prefix), memoryview(hi))
        else:
            sql = "SELECT k, v FROM kv WHERE substr(k,1,?) = ? ORDER BY k"
            args = (len(prefix), memoryview(prefix))
        with self._lock:
            rows = self._conn.execute(sql, args).fetchall()
        for k, v in rows:
            yield bytes(k), bytes(v)

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._conn.close()
                self._closed = True

    # --- KV ---

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
                (memoryview(key), memoryview(value)),
            )

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE k = ?", (memoryview(key),))

    def batch(self) -> Batch:
        return SQLiteBatch(self)


def open_sqlite_kv(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> SQLiteKV:
    """
    Open (or create) a SQLite KV at `path` (":memory:" for tests).
    `create=False` raises FileNotFoundError if the file does not exist.
    """
    return SQLiteKV(_open_connection(path, pragmas=pragmas, create=create))


__all__ = [
    "SQLiteKV",
    "SQLiteBatch",
    "open_sqlite_kv",
]
