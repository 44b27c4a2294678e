"""
tracker.query — "contract changes since block N" over the in-memory index.

    get_states(index, ["100", "10"])
      -> flat list of record JSON objects for the first 10 blocks >= 100
    get_states(index, ["abc", "10"])
      -> None   (invalid input is not an empty result)

Both parameters are 32-bit signed integers given as JSON strings (numbers are
accepted too). Fewer than two parameters, or either one unparseable, yields
None; the RPC layer returns that as a JSON null.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from tracker.index import StateIndex

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")


def parse_int32(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        n = value
    elif isinstance(value, str) and _INT_RE.match(value):
        n = int(value)
    else:
        return None
    if not (INT32_MIN <= n <= INT32_MAX):
        return None
    return n


def get_states(index: StateIndex, params: Optional[Sequence[Any]]) -> Optional[List[Dict[str, Any]]]:
    if params is None or isinstance(params, (str, bytes)) or len(params) < 2:
        return None
    since = parse_int32(params[0])
    max_blocks = parse_int32(params[1])
    if since is None or max_blocks is None:
        return None
    return [r.to_json() for r in index.since(since, max_blocks)]


__all__ = ["get_states", "parse_int32"]
