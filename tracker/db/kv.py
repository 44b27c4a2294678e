from __future__ import annotations

"""
KV interface & key helpers
==========================

Backend-agnostic Key–Value protocols used by the tracker's storage. Backends
(sqlite) implement these and the batch semantics. This file is *pure
interface + helpers* and contains no I/O.

Keys
----
The contract log keys each record by its sequence id encoded as a fixed-width
little-endian 32-bit integer (`le_u32`), the same layout the node used for
the plugin's database. Because the encoding is little-endian, lexicographic
key order is NOT numeric order; the log is always read by point lookups
(id 1, 2, 3 …), never by range scans.

>>> le_u32(1)
b'\\x01\\x00\\x00\\x00'
>>> from_le_u32(le_u32(258))
258

Batching
--------
`KV.batch()` returns a context manager that commits on clean exit and rolls
back if an exception escapes.
"""

from typing import Iterator, Optional, Protocol, Tuple, runtime_checkable


def le_u32(n: int) -> bytes:
    if not (0 <= n < (1 << 32)):
        raise ValueError("le_u32 out of range")
    return n.to_bytes(4, "little")


def from_le_u32(b: bytes) -> int:
    if len(b) != 4:
        raise ValueError("expected 4 bytes for u32")
    return int.from_bytes(b, "little")


@runtime_checkable
class ReadOnlyKV(Protocol):
    """Minimal read-only KV surface."""

    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def has(self, key: bytes) -> bool:
        ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs whose key begins with `prefix`, in byte order."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Batch(Protocol):
    """Atomic write batch; committed on clean context exit, rolled back otherwise."""

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    """Full RW KV surface."""

    def put(self, key: bytes, value: bytes) -> None:
        """Persist (key, value). Overwrites if exists."""
        ...

    def delete(self, key: bytes) -> None:
        ...

    def batch(self) -> Batch:
        ...


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "le_u32",
    "from_le_u32",
]
