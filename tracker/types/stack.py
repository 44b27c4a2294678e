"""
tracker.types.stack — typed results of read-only contract invocations.

The node's VM leaves typed items on its result stack; the tracker only cares
about the item *type* (to validate token probe shapes) and the payload.

    StackItem.byte_string(b"Token").as_string()  -> "Token"
    StackItem.integer(8).as_int()                -> 8
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Any


class VMState(IntFlag):
    NONE = 0
    HALT = 1
    FAULT = 2
    BREAK = 4


class StackItemType(IntEnum):
    ANY = 0x00
    POINTER = 0x10
    BOOLEAN = 0x20
    INTEGER = 0x21
    BYTE_STRING = 0x28
    BUFFER = 0x30
    ARRAY = 0x40
    STRUCT = 0x41
    MAP = 0x48
    INTEROP_INTERFACE = 0x60


@dataclass(frozen=True)
class StackItem:
    type: StackItemType
    value: Any = None

    @classmethod
    def byte_string(cls, value: bytes | str) -> "StackItem":
        if isinstance(value, str):
            value = value.encode("utf-8")
        return cls(StackItemType.BYTE_STRING, bytes(value))

    @classmethod
    def integer(cls, value: int) -> "StackItem":
        return cls(StackItemType.INTEGER, int(value))

    @classmethod
    def boolean(cls, value: bool) -> "StackItem":
        return cls(StackItemType.BOOLEAN, bool(value))

    def as_string(self) -> str:
        """Strict UTF-8 decode of a ByteString payload."""
        if self.type != StackItemType.BYTE_STRING:
            raise TypeError(f"expected ByteString, got {self.type.name}")
        return bytes(self.value).decode("utf-8")

    def as_int(self) -> int:
        if self.type != StackItemType.INTEGER or isinstance(self.value, bool):
            raise TypeError(f"expected Integer, got {self.type.name}")
        return int(self.value)


__all__ = ["VMState", "StackItemType", "StackItem"]
