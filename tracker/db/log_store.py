from __future__ import annotations

"""
Contract log store
==================

Durable, append-only, sequence-keyed record store.

Key layout
----------
- le_u32(seq) -> record bytes          (seq = 1, 2, 3, …)

Ids are gapless by construction, so the log is read back with point lookups
from id 1 upward. The first missing id, or the first value the validator
rejects, is the end of the log: everything before it is loaded, nothing at or
after it is. Appends continue from the last id accepted by that scan.

The store never updates or deletes a record it handed out an id for. The one
exception is an orphan: a value that sits *past* the end of the log (beyond a
gap or a corrupt slot). Such a slot is not part of the log, and the next
append at that id replaces it, with a warning.
"""

import logging
from typing import Any, Callable, Iterator, Optional, Tuple

from tracker.errors import DeserializationError, RecordNotFound

from .kv import KV, le_u32

log = logging.getLogger(__name__)

Validator = Callable[[bytes], Any]

FIRST_ID = 1
MAX_ID = (1 << 32) - 1


class LogStore:
    """
    Append-only log over a KV backend.

    `validator`, when given, is called on every value during a scan; raising
    `DeserializationError` marks that id as the end of the log.
    """

    def __init__(self, kv: KV, *, validator: Optional[Validator] = None) -> None:
        self.kv = kv
        self._validator = validator
        self._last_id: Optional[int] = None

    # --- Reads ---

    def get(self, sequence_id: int) -> bytes:
        if not (FIRST_ID <= sequence_id <= MAX_ID):
            raise RecordNotFound(sequence_id)
        value = self.kv.get(le_u32(sequence_id))
        if value is None:
            raise RecordNotFound(sequence_id)
        return value

    def replay_all(self) -> Iterator[Tuple[int, bytes]]:
        """
        Yield (sequence_id, value) from id 1 upward until the end of the log.
        When the iterator is exhausted, `last_id` reflects the records yielded.
        """
        last = FIRST_ID - 1
        for seq, value in self._scan():
            last = seq
            yield seq, value
        self._last_id = last

    def _scan(self) -> Iterator[Tuple[int, bytes]]:
        seq = FIRST_ID
        while seq <= MAX_ID:
            value = self.kv.get(le_u32(seq))
            if value is None:
                log.debug("log end reached", extra={"next_id": seq})
                return
            if self._validator is not None:
                try:
                    self._validator(value)
                except DeserializationError as e:
                    log.warning(
                        "corrupt record ends the log",
                        extra={"sequence_id": seq, "reason": e.message},
                    )
                    return
            yield seq, value
            seq += 1

    # --- Writes ---

    @property
    def last_id(self) -> int:
        """Highest valid sequence id (0 for an empty log)."""
        if self._last_id is None:
            last = FIRST_ID - 1
            for last, _ in self._scan():
                pass
            self._last_id = last
        return self._last_id

    @property
    def next_id(self) -> int:
        return self.last_id + 1

    def append(self, value: bytes) -> int:
        """
        Persist `value` under the next sequence id and return that id. The
        write is durable when this returns (autocommit + synchronous=FULL).
        """
        seq = self.next_id
        if seq > MAX_ID:
            raise OverflowError("contract log sequence space exhausted")
        key = le_u32(seq)
        if self.kv.has(key):
            log.warning("overwriting orphaned record past the log end", extra={"sequence_id": seq})
        self.kv.put(key, bytes(value))
        self._last_id = seq
        return seq

    def close(self) -> None:
        self.kv.close()


__all__ = ["LogStore", "FIRST_ID"]
