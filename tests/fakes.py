"""
Test doubles and builders shared by the tracker tests.

- FakeSnapshot: counts clones, never mutated by probes
- FakeInvoker: scripted per-(contract, method) results, records every call
- builders for contracts, transactions and realistic transaction scripts
"""
from __future__ import annotations

import typing as t

from tracker.errors import InvocationError
from tracker.types.chain import (Block, ChangeKind, ContractDiff,
                                 ContractManifest, ContractState,
                                 ExecutedTransaction, Transaction)
from tracker.types.stack import StackItem, VMState
from tracker.vm.invoke import InvocationResult
from tracker.vm.script import Interop, ScriptBuilder


class FakeSnapshot:
    def __init__(self, parent: "FakeSnapshot | None" = None) -> None:
        self.parent = parent
        self.clones: t.List["FakeSnapshot"] = []

    def clone(self) -> "FakeSnapshot":
        child = FakeSnapshot(self)
        self.clones.append(child)
        return child


Scripted = t.Union[InvocationResult, Exception]


class FakeInvoker:
    """Unscripted calls fault, like a contract without the method."""

    def __init__(self) -> None:
        self.results: t.Dict[t.Tuple[bytes, str], Scripted] = {}
        self.calls: t.List[t.Tuple[t.Any, bytes, str, int]] = []

    def script(self, script_hash: bytes, method: str, result: Scripted) -> "FakeInvoker":
        self.results[(bytes(script_hash), method)] = result
        return self

    def token(
        self,
        script_hash: bytes,
        *,
        name: str = "Test",
        symbol: str = "TST",
        decimals: int = 8,
        total_supply: int = 1_000_000,
    ) -> "FakeInvoker":
        self.script(script_hash, "name", halt(StackItem.byte_string(name)))
        self.script(script_hash, "symbol", halt(StackItem.byte_string(symbol)))
        self.script(script_hash, "decimals", halt(StackItem.integer(decimals)))
        self.script(script_hash, "totalSupply", halt(StackItem.integer(total_supply)))
        return self

    def invoke(
        self, snapshot: t.Any, script_hash: bytes, method: str, *, gas_limit: int
    ) -> InvocationResult:
        self.calls.append((snapshot, bytes(script_hash), method, gas_limit))
        res = self.results.get((bytes(script_hash), method))
        if res is None:
            return InvocationResult.fault()
        if isinstance(res, Exception):
            raise res
        return res


def halt(*items: StackItem) -> InvocationResult:
    return InvocationResult(state=VMState.HALT, stack=tuple(items), gas_consumed=1000)


def engine_error(method: str) -> InvocationError:
    return InvocationError("engine raised during invocation", method=method)


# ---- builders ---------------------------------------------------------------


def script_hash(n: int) -> bytes:
    return bytes([n]) * 20


def contract(
    n: int,
    *,
    script: bytes | None = None,
    standards: t.Sequence[str] = (),
) -> ContractState:
    body = script if script is not None else bytes([0x57, 0x00, n, 0x40]) * 4
    manifest = ContractManifest.from_json(
        {"name": f"contract-{n}", "supportedstandards": list(standards), "abi": {}}
    )
    return ContractState(id=n, script_hash=script_hash(n), script=body, manifest=manifest)


def token_contract(n: int) -> ContractState:
    return contract(n, standards=("NEP-5",))


def tx(n: int, script: bytes = b"") -> Transaction:
    return Transaction(hash=bytes([n]) * 32, script=script)


def ok(transaction: Transaction) -> ExecutedTransaction:
    return ExecutedTransaction(transaction, VMState.HALT)


def faulted(transaction: Transaction) -> ExecutedTransaction:
    return ExecutedTransaction(transaction, VMState.FAULT)


def block(index: int, *txs: Transaction, timestamp: int | None = None) -> Block:
    ts = timestamp if timestamp is not None else 1_600_000_000_000 + index * 15_000
    return Block(index=index, timestamp=ts, transactions=txs)


def diff(kind: ChangeKind | str, item: ContractState) -> ContractDiff:
    return ContractDiff(ChangeKind.parse(kind), item)


# ---- transaction scripts ----------------------------------------------------


def deploy_script(c: ContractState) -> bytes:
    """Deploy: push manifest, push script, SYSCALL create."""
    return (
        ScriptBuilder()
        .emit_push_string('{"name":"contract"}')
        .emit_push_bytes(c.script)
        .emit_syscall(Interop.CONTRACT_CREATE)
        .to_bytes()
    )


def update_script(c: ContractState) -> bytes:
    """Update carries the new script verbatim and is called through the contract."""
    return (
        ScriptBuilder()
        .emit_push_bytes(c.script)
        .emit_push_bytes(c.script_hash)
        .emit_syscall(Interop.CONTRACT_UPDATE)
        .to_bytes()
    )


def destroy_script(c: ContractState) -> bytes:
    return (
        ScriptBuilder()
        .emit_push_bytes(c.script_hash)
        .emit_syscall(Interop.CONTRACT_DESTROY)
        .to_bytes()
    )


def call_script(c: ContractState, method: str = "destroy", *extra: bytes) -> bytes:
    """App call of `method` on `c`, optionally followed by pushes of `extra`."""
    sb = ScriptBuilder()
    for data in extra:
        sb.emit_push_bytes(data)
    return sb.emit_app_call(c.script_hash, method).to_bytes()


def bare_hash_push(c: ContractState) -> bytes:
    """Hash push followed by nothing recognizable."""
    return ScriptBuilder().emit_push_bytes(c.script_hash).emit_push_int(7).to_bytes()
