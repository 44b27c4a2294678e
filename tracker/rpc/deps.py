from __future__ import annotations

"""
tracker.rpc.deps
================
Holds the running `ContractTracker` for method handlers.

The server factory installs it; handlers fetch it per call:

    from tracker.rpc import deps
    deps.set_tracker(tracker)
    ...
    deps.get_tracker().get_contract_states(params)
"""

import threading
import typing as t

from tracker.rpc.errors import TemporarilyUnavailable

if t.TYPE_CHECKING:  # pragma: no cover
    from tracker.plugin import ContractTracker

_LOCK = threading.RLock()
_TRACKER: "ContractTracker | None" = None


def set_tracker(tracker: "ContractTracker | None") -> None:
    global _TRACKER
    with _LOCK:
        _TRACKER = tracker


def get_tracker() -> "ContractTracker":
    with _LOCK:
        if _TRACKER is None:
            raise TemporarilyUnavailable("contract tracker not attached")
        return _TRACKER


__all__ = ["set_tracker", "get_tracker"]
