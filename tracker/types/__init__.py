"""Data types shared across the tracker: host inputs, VM results, records."""

from .chain import (
    Block,
    ChangeKind,
    ChangeSet,
    ContractDiff,
    ContractManifest,
    ContractState,
    ExecutedTransaction,
    Transaction,
    hash_from_str,
    hash_to_str,
)
from .record import UNKNOWN_TXID, ContractStateRecord, TokenMetadata
from .stack import StackItem, StackItemType, VMState

__all__ = [
    "Block",
    "ChangeKind",
    "ChangeSet",
    "ContractDiff",
    "ContractManifest",
    "ContractState",
    "ExecutedTransaction",
    "Transaction",
    "hash_from_str",
    "hash_to_str",
    "UNKNOWN_TXID",
    "ContractStateRecord",
    "TokenMetadata",
    "StackItem",
    "StackItemType",
    "VMState",
]
