"""
tracker.index — in-memory per-block index of contract state records.

    block_index -> [record, record, …]   (ascending blocks, diff order inside)

One writer (the host's persist thread) and any number of readers (RPC worker
threads) share it. Every access takes the index lock, and the writer holds it
across a whole block via `writer()`, so a reader sees either none or all of a
block's records. The lock is re-entrant so the writer can still read `top`
while it holds it.
"""

from __future__ import annotations

import bisect
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from tracker.types.record import ContractStateRecord


class StateIndex:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._blocks: Dict[int, List[ContractStateRecord]] = {}
        self._order: List[int] = []  # sorted block indices
        self._top: Optional[ContractStateRecord] = None
        self._count = 0

    @contextmanager
    def writer(self) -> Iterator["StateIndex"]:
        """Hold the index exclusively (e.g. for the duration of one block)."""
        with self._lock:
            yield self

    def add(self, record: ContractStateRecord) -> None:
        with self._lock:
            bucket = self._blocks.get(record.block_index)
            if bucket is None:
                bucket = []
                self._blocks[record.block_index] = bucket
                bisect.insort(self._order, record.block_index)
            bucket.append(record)
            self._top = record
            self._count += 1

    @property
    def top(self) -> Optional[ContractStateRecord]:
        """The most recently added record overall."""
        with self._lock:
            return self._top

    def since(self, block_index: int, max_blocks: int) -> List[ContractStateRecord]:
        """
        Records of at most `max_blocks` distinct blocks with index >=
        `block_index`, ascending, flattened in within-block order.
        """
        if max_blocks <= 0:
            return []
        with self._lock:
            start = bisect.bisect_left(self._order, block_index)
            out: List[ContractStateRecord] = []
            for idx in self._order[start : start + max_blocks]:
                out.extend(self._blocks[idx])
            return out

    def block(self, block_index: int) -> List[ContractStateRecord]:
        with self._lock:
            return list(self._blocks.get(block_index, ()))

    @property
    def block_count(self) -> int:
        with self._lock:
            return len(self._order)

    @property
    def record_count(self) -> int:
        with self._lock:
            return self._count

    def __len__(self) -> int:
        return self.record_count


__all__ = ["StateIndex"]
