"""
tracker.types.chain — host-supplied inputs for one persisted block.

The node hands the tracker, per block:
  * the block (index, timestamp, transactions),
  * the contract change-set (each contract tagged Created/Updated/Deleted),
  * the executed transactions with their VM outcome.

These are plain frozen dataclasses; adapters for a concrete node build them
from its native objects. Hashes are raw bytes in the node's internal
(little-endian) order; their display form is `0x` + reversed hex.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .stack import VMState

HASH160_LEN = 20
HASH256_LEN = 32


def hash_to_str(h: bytes) -> str:
    """Display form of a node hash: 0x + big-endian hex."""
    return "0x" + bytes(reversed(h)).hex()


def hash_from_str(s: str) -> bytes:
    """Inverse of `hash_to_str` (accepts with or without 0x)."""
    s = s.strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    return bytes(reversed(bytes.fromhex(s)))


class ChangeKind(str, Enum):
    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value

    @classmethod
    def parse(cls, s: "str | ChangeKind") -> "ChangeKind":
        """
        Lenient parse; accepts our names and the node's track-state names
        (Added / Changed / Deleted), any case.
        """
        if isinstance(s, ChangeKind):
            return s
        norm = str(s).strip().lower()
        if norm in ("created", "added", "create", "add"):
            return cls.CREATED
        if norm in ("updated", "changed", "update", "change"):
            return cls.UPDATED
        if norm in ("deleted", "delete", "destroyed"):
            return cls.DELETED
        raise ValueError(f"unknown change kind: {s!r}")


@dataclass(frozen=True)
class Transaction:
    hash: bytes
    script: bytes = b""

    @property
    def txid(self) -> str:
        return hash_to_str(self.hash)


@dataclass(frozen=True)
class Block:
    index: int
    timestamp: int
    transactions: Tuple[Transaction, ...] = ()

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("block index must be >= 0")
        object.__setattr__(self, "transactions", tuple(self.transactions))


@dataclass(frozen=True)
class ExecutedTransaction:
    """A transaction together with its VM outcome (None for system executions)."""

    transaction: Optional[Transaction]
    vm_state: VMState = VMState.HALT

    @property
    def faulted(self) -> bool:
        return bool(self.vm_state & VMState.FAULT)


@dataclass(frozen=True)
class ContractManifest:
    """Subset of a contract manifest the tracker reads, plus the raw JSON."""

    supported_standards: Tuple[str, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, obj: Optional[Mapping[str, Any]]) -> "ContractManifest":
        obj = dict(obj or {})
        stds = obj.get("supportedstandards", obj.get("supportedStandards", ())) or ()
        return cls(supported_standards=tuple(str(s) for s in stds), raw=obj)

    def to_json(self) -> Dict[str, Any]:
        out = dict(self.raw)
        if "supportedstandards" not in out and "supportedStandards" not in out:
            out["supportedstandards"] = list(self.supported_standards)
        return out


@dataclass(frozen=True)
class ContractState:
    id: int
    script_hash: bytes
    script: bytes
    manifest: ContractManifest = field(default_factory=ContractManifest)

    def __post_init__(self) -> None:
        if len(self.script_hash) != HASH160_LEN:
            raise ValueError("contract script hash must be 20 bytes")

    @property
    def hash(self) -> str:
        return hash_to_str(self.script_hash)

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hash": self.hash,
            "script": base64.b64encode(self.script).decode("ascii"),
            "manifest": self.manifest.to_json(),
        }


@dataclass(frozen=True)
class ContractDiff:
    kind: ChangeKind
    item: ContractState


ChangeSet = Sequence[ContractDiff]


__all__ = [
    "HASH160_LEN",
    "HASH256_LEN",
    "hash_to_str",
    "hash_from_str",
    "ChangeKind",
    "Transaction",
    "Block",
    "ExecutedTransaction",
    "ContractManifest",
    "ContractState",
    "ContractDiff",
    "ChangeSet",
]
