"""
tracker.vm.invoke — the injected "run a read-only contract call" capability.

The tracker never embeds an execution engine. It is handed an `Invoker`:

    result = invoker.invoke(snapshot, script_hash, "symbol", gas_limit=100_000_000)
    if result.ok:
        item = result.top

`EngineInvoker` adapts a node engine exposed as a context-manager factory

    engine_factory(script: bytes, snapshot, gas_limit: int) -> ContextManager[Engine]

where the engine object exposes `.state` (VMState), `.result_stack`
(sequence of StackItem, bottom → top) and optionally `.gas_consumed`. The
engine is always closed when the call returns, whatever the outcome, so no
invocation leaks engine state into the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (Any, Callable, ContextManager, Optional, Protocol, Sequence,
                    Tuple, runtime_checkable)

from tracker.errors import InvocationError
from tracker.types.stack import StackItem, VMState

from .script import ScriptBuilder

log = logging.getLogger(__name__)


@runtime_checkable
class Snapshot(Protocol):
    """Read view of node state. `clone()` returns an isolated, disposable view."""

    def clone(self) -> "Snapshot": ...


@dataclass(frozen=True)
class InvocationResult:
    state: VMState
    stack: Tuple[StackItem, ...] = ()
    gas_consumed: int = 0

    @property
    def faulted(self) -> bool:
        return bool(self.state & VMState.FAULT)

    @property
    def ok(self) -> bool:
        return not self.faulted and len(self.stack) > 0

    @property
    def top(self) -> Optional[StackItem]:
        return self.stack[-1] if self.stack else None

    @classmethod
    def fault(cls, gas_consumed: int = 0) -> "InvocationResult":
        return cls(state=VMState.FAULT, gas_consumed=gas_consumed)


@runtime_checkable
class Invoker(Protocol):
    def invoke(
        self, snapshot: Any, script_hash: bytes, method: str, *, gas_limit: int
    ) -> InvocationResult:
        """Run `method()` on the contract read-only; never mutates `snapshot`."""
        ...


EngineFactory = Callable[[bytes, Any, int], ContextManager[Any]]


class EngineInvoker:
    """Invoker over a node execution engine factory."""

    def __init__(self, engine_factory: EngineFactory) -> None:
        self._factory = engine_factory

    def invoke(
        self, snapshot: Any, script_hash: bytes, method: str, *, gas_limit: int
    ) -> InvocationResult:
        script = ScriptBuilder().emit_app_call(script_hash, method).to_bytes()
        try:
            with self._factory(script, snapshot, gas_limit) as engine:
                state = VMState(int(engine.state))
                stack: Sequence[StackItem] = tuple(engine.result_stack or ())
                gas = int(getattr(engine, "gas_consumed", 0) or 0)
        except InvocationError:
            raise
        except Exception as e:
            raise InvocationError(
                "engine raised during invocation",
                method=method,
                contract=script_hash[::-1].hex(),
                error=f"{type(e).__name__}: {e}",
            ) from e

        if state & VMState.FAULT:
            log.debug("invocation faulted", extra={"method": method, "gas": gas})
            return InvocationResult.fault(gas)
        return InvocationResult(state=state, stack=tuple(stack), gas_consumed=gas)


class OfflineInvoker:
    """
    Invoker for processes with no execution engine attached (the standalone
    RPC server, the CLI). Every call faults, so token probes yield nothing.
    """

    def invoke(
        self, snapshot: Any, script_hash: bytes, method: str, *, gas_limit: int
    ) -> InvocationResult:
        return InvocationResult.fault()


__all__ = [
    "Snapshot",
    "InvocationResult",
    "Invoker",
    "EngineInvoker",
    "OfflineInvoker",
    "EngineFactory",
]
