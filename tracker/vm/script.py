"""
tracker.vm.script — opcode constants and a tiny script builder.

Only the handful of node VM instructions the tracker needs:

* pushes (`PUSHDATA1/2/4`, `PUSH0..PUSH16`, `PUSHINT8..PUSHINT64`)
* `NEWARRAY0`
* `SYSCALL` with a 4-byte interop id

`ScriptBuilder.emit_app_call(hash, method)` produces the script used for the
read-only token probes:

    NEWARRAY0 | PUSHDATA1 len(method) method | PUSHDATA1 0x14 <hash20> | SYSCALL System.Contract.Call

Test helpers use the same builder to assemble realistic transaction scripts.
"""

from __future__ import annotations

from enum import IntEnum


class OpCode(IntEnum):
    PUSHINT8 = 0x00
    PUSHINT16 = 0x01
    PUSHINT32 = 0x02
    PUSHINT64 = 0x03
    PUSHDATA1 = 0x0C
    PUSHDATA2 = 0x0D
    PUSHDATA4 = 0x0E
    PUSHM1 = 0x0F
    PUSH0 = 0x10
    PUSH16 = 0x20
    NOP = 0x21
    RET = 0x40
    SYSCALL = 0x41
    NEWARRAY0 = 0xC2


class Interop:
    """4-byte interop ids (little-endian method hash) as emitted after SYSCALL."""

    CONTRACT_CALL = bytes.fromhex("627d5b52")
    CONTRACT_DESTROY = bytes.fromhex("c69f1df0")
    CONTRACT_UPDATE = bytes.fromhex("31c6331d")
    CONTRACT_CREATE = bytes.fromhex("ce352c85")


def syscall(interop_id: bytes) -> bytes:
    if len(interop_id) != 4:
        raise ValueError("interop id must be 4 bytes")
    return bytes([OpCode.SYSCALL]) + interop_id


class ScriptBuilder:
    """Append-only byte builder for node VM scripts."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def emit(self, op: OpCode, operand: bytes = b"") -> "ScriptBuilder":
        self._buf.append(int(op))
        self._buf.extend(operand)
        return self

    def emit_push_bytes(self, data: bytes) -> "ScriptBuilder":
        n = len(data)
        if n < 0x100:
            self.emit(OpCode.PUSHDATA1, bytes([n]))
        elif n < 0x10000:
            self.emit(OpCode.PUSHDATA2, n.to_bytes(2, "little"))
        else:
            self.emit(OpCode.PUSHDATA4, n.to_bytes(4, "little"))
        self._buf.extend(data)
        return self

    def emit_push_string(self, s: str) -> "ScriptBuilder":
        return self.emit_push_bytes(s.encode("utf-8"))

    def emit_push_int(self, n: int) -> "ScriptBuilder":
        if -1 <= n <= 16:
            self._buf.append(OpCode.PUSH0 + n)
            return self
        for op, width in (
            (OpCode.PUSHINT8, 1),
            (OpCode.PUSHINT16, 2),
            (OpCode.PUSHINT32, 4),
            (OpCode.PUSHINT64, 8),
        ):
            lo, hi = -(1 << (8 * width - 1)), (1 << (8 * width - 1)) - 1
            if lo <= n <= hi:
                return self.emit(op, n.to_bytes(width, "little", signed=True))
        raise OverflowError("integer too large for a fixed-width push")

    def emit_syscall(self, interop_id: bytes) -> "ScriptBuilder":
        self._buf.extend(syscall(interop_id))
        return self

    def emit_app_call(self, script_hash: bytes, method: str) -> "ScriptBuilder":
        """Call `method` on the contract with no arguments."""
        self.emit(OpCode.NEWARRAY0)
        self.emit_push_string(method)
        self.emit_push_bytes(script_hash)
        return self.emit_syscall(Interop.CONTRACT_CALL)

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)


__all__ = ["OpCode", "Interop", "syscall", "ScriptBuilder"]
