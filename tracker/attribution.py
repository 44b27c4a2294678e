"""
tracker.attribution — which transaction caused a contract state change?

The node does not expose a causal link between a contract mutation and the
transaction that made it, only the list of executed transactions. The tracker
therefore guesses by static byte containment over transaction scripts. This is
an approximation: a script that builds the contract hash or the contract
script dynamically will not be matched, and a script that merely mentions
them may be. The rules below are the whole contract of this module.

Rules
-----
1. Genesis block: the first transaction of the block, whatever the change.
2. Otherwise walk executed transactions in order, skipping faulted ones and
   ones without a script.
3. Deleted contract: look for a push of the contract hash
   (`HASH_PUSH_PREFIX + hash`) in the script:
     * with a destroy or update syscall → this transaction;
     * with a generic call syscall → this transaction only if the script also
       contains the script of the most recently logged record (the contract
       that performed the destroy on the caller's behalf); otherwise go on;
     * with neither → give up: "" and stop scanning.
4. Created / Updated contract: first transaction whose script contains the
   full contract script (deploy and update carry it verbatim).
5. Nothing matched → "".
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Optional

from tracker.metrics import tracker_metrics
from tracker.types.chain import Block, ChangeKind, ExecutedTransaction
from tracker.types.record import UNKNOWN_TXID, ContractStateRecord
from tracker.vm.script import Interop, OpCode, syscall

log = logging.getLogger(__name__)

# PUSHDATA1 with a 20-byte operand: how scripts push a contract hash.
HASH_PUSH_PREFIX = bytes([OpCode.PUSHDATA1, 0x14])

DESTROY_SEQUENCE = syscall(Interop.CONTRACT_DESTROY)  # 41 c69f1df0
UPDATE_SEQUENCE = syscall(Interop.CONTRACT_UPDATE)  # 41 31c6331d
CALL_SEQUENCE = syscall(Interop.CONTRACT_CALL)  # 41 627d5b52


class Outcome(str, Enum):
    GENESIS = "genesis"
    MATCHED = "matched"
    INCONCLUSIVE = "inconclusive"
    UNMATCHED = "unmatched"


def hash_push(script_hash: bytes) -> bytes:
    if len(script_hash) != 20:
        raise ValueError("script hash must be 20 bytes")
    return HASH_PUSH_PREFIX + bytes(script_hash)


class TxAttributor:
    """Stateless; safe to share."""

    def attribute(
        self,
        block: Block,
        kind: ChangeKind,
        script_hash: bytes,
        script: bytes,
        prior_top: Optional[ContractStateRecord],
        executed: Iterable[ExecutedTransaction],
    ) -> str:
        kind = ChangeKind.parse(kind)
        txid, outcome = self._attribute(block, kind, script_hash, script, prior_top, executed)
        tracker_metrics.attribution(outcome.value)
        if outcome is not Outcome.MATCHED and outcome is not Outcome.GENESIS:
            log.debug(
                "attribution gave up",
                extra={"block": block.index, "kind": kind.value, "outcome": outcome.value},
            )
        return txid

    def _attribute(
        self,
        block: Block,
        kind: ChangeKind,
        script_hash: bytes,
        script: bytes,
        prior_top: Optional[ContractStateRecord],
        executed: Iterable[ExecutedTransaction],
    ) -> "tuple[str, Outcome]":
        if block.index == 0:
            if not block.transactions:
                return UNKNOWN_TXID, Outcome.UNMATCHED
            return block.transactions[0].txid, Outcome.GENESIS

        push = hash_push(script_hash) if kind is ChangeKind.DELETED else b""

        for exe in executed:
            tx = exe.transaction
            if exe.faulted or tx is None or not tx.script:
                continue
            tx_script = tx.script

            if kind is ChangeKind.DELETED:
                if push not in tx_script:
                    continue
                if DESTROY_SEQUENCE in tx_script or UPDATE_SEQUENCE in tx_script:
                    return tx.txid, Outcome.MATCHED
                if CALL_SEQUENCE in tx_script:
                    if (
                        prior_top is not None
                        and prior_top.script
                        and prior_top.script in tx_script
                    ):
                        return tx.txid, Outcome.MATCHED
                    continue
                return UNKNOWN_TXID, Outcome.INCONCLUSIVE

            if script and script in tx_script:
                return tx.txid, Outcome.MATCHED

        return UNKNOWN_TXID, Outcome.UNMATCHED


__all__ = [
    "HASH_PUSH_PREFIX",
    "DESTROY_SEQUENCE",
    "UPDATE_SEQUENCE",
    "CALL_SEQUENCE",
    "Outcome",
    "TxAttributor",
    "hash_push",
]
