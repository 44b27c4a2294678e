"""
Contract state methods.

    tracker.getContractStates ["<sinceBlockIndex>", "<maxBlocks>"]
        -> [record, …] for up to maxBlocks distinct blocks starting at
           sinceBlockIndex, or null when the params do not parse.
        Also answers to the legacy name `getcontractstates`.

    tracker.getStats
        -> {"blocks": int, "records": int, "lastSequenceId": int}
"""

from __future__ import annotations

import typing as t

from tracker.rpc import deps
from tracker.rpc.models import StatsView

from . import method


@method("tracker.getContractStates", aliases=("getcontractstates",))
def get_contract_states(*params: t.Any) -> t.Optional[t.List[t.Dict[str, t.Any]]]:
    """Contract state records since a block index, for up to N blocks."""
    return deps.get_tracker().get_contract_states(list(params))


@method("tracker.getStats", result_model=StatsView)
def get_stats() -> t.Dict[str, int]:
    """Index and log sizes."""
    return deps.get_tracker().stats()
