"""Execution-engine seam: invoker protocol, results, and script building."""

from .invoke import EngineInvoker, InvocationResult, Invoker, OfflineInvoker, Snapshot
from .script import Interop, OpCode, ScriptBuilder, syscall

__all__ = [
    "EngineInvoker",
    "InvocationResult",
    "Invoker",
    "OfflineInvoker",
    "Snapshot",
    "Interop",
    "OpCode",
    "ScriptBuilder",
    "syscall",
]
