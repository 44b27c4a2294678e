"""
tracker.types.record — the persisted contract-state record.

One record per (block, contract change). Records are immutable once written.

Persisted / RPC shape (compact UTF-8 JSON)
------------------------------------------
    {
      "id": 12, "hash": "0x…", "script": "<base64>", "manifest": {…},
      "blockindex": 100, "blocktime": 1600000000000,
      "state": "Created", "txid": "0x…" | "",
      "name": "Test", "symbol": "TST", "decimals": 8, "totalsupply": "1000000"
    }

The four token fields are present together or not at all. `txid` is always
present; the empty string means attribution ran and found no transaction.
The sequence id is the storage key and is not part of the JSON.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from tracker.errors import RecordDecodeError, SerializationError

from .chain import ChangeKind

UNKNOWN_TXID = ""

_TOKEN_FIELDS = ("name", "symbol", "decimals", "totalsupply")


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int
    total_supply: int

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalsupply": str(self.total_supply),
        }


@dataclass(frozen=True)
class ContractStateRecord:
    block_index: int
    block_timestamp: int
    contract_id: int
    contract_hash: str
    script: bytes
    manifest: Mapping[str, Any]
    change_kind: ChangeKind
    causing_txid: str
    token: Optional[TokenMetadata] = None
    sequence_id: Optional[int] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.causing_txid is None:
            raise ValueError("causing_txid must be a txid or the unknown marker ''")

    @property
    def attributed(self) -> bool:
        return self.causing_txid != UNKNOWN_TXID

    def with_sequence_id(self, sequence_id: int) -> "ContractStateRecord":
        return replace(self, sequence_id=sequence_id)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.contract_id,
            "hash": self.contract_hash,
            "script": base64.b64encode(self.script).decode("ascii"),
            "manifest": dict(self.manifest),
            "blockindex": self.block_index,
            "blocktime": self.block_timestamp,
            "state": self.change_kind.value,
            "txid": self.causing_txid,
        }
        if self.token is not None:
            out.update(self.token.to_json())
        return out

    def encode(self) -> bytes:
        try:
            text = json.dumps(self.to_json(), separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                "record is not JSON-serializable", contract=self.contract_hash
            ).add_context(cause=str(e)) from e
        return text.encode("utf-8")

    @classmethod
    def from_json(
        cls, obj: Mapping[str, Any], *, sequence_id: Optional[int] = None
    ) -> "ContractStateRecord":
        if not isinstance(obj, Mapping):
            raise RecordDecodeError("record must be a JSON object")
        try:
            script = base64.b64decode(_req(obj, "script", str), validate=True)
        except (binascii.Error, ValueError) as e:
            raise RecordDecodeError("script is not valid base64") from e
        try:
            kind = ChangeKind.parse(_req(obj, "state", str))
        except ValueError as e:
            raise RecordDecodeError("unknown state", state=obj.get("state")) from e

        manifest = obj.get("manifest", {})
        if not isinstance(manifest, Mapping):
            raise RecordDecodeError("manifest must be an object")

        return cls(
            block_index=_req(obj, "blockindex", int),
            block_timestamp=_req(obj, "blocktime", int),
            contract_id=_int_or(obj.get("id"), 0),
            contract_hash=_req(obj, "hash", str),
            script=script,
            manifest=dict(manifest),
            change_kind=kind,
            causing_txid=_req(obj, "txid", str),
            token=_token_from_json(obj),
            sequence_id=sequence_id,
        )

    @classmethod
    def decode(cls, data: bytes, *, sequence_id: Optional[int] = None) -> "ContractStateRecord":
        try:
            obj = json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise RecordDecodeError("record is not UTF-8 JSON", sequence_id=sequence_id) from e
        return cls.from_json(obj, sequence_id=sequence_id)


def _req(obj: Mapping[str, Any], key: str, typ: type) -> Any:
    if key not in obj:
        raise RecordDecodeError("missing field", field=key)
    v = obj[key]
    if typ is int:
        return _int_or(v, None, key=key)
    if not isinstance(v, typ):
        raise RecordDecodeError("ill-typed field", field=key)
    return v


def _int_or(v: Any, default: Optional[int], *, key: str = "id") -> Any:
    # Older writers stored numbers as strings; accept both.
    if isinstance(v, bool):
        raise RecordDecodeError("ill-typed field", field=key)
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        try:
            return int(v)
        except ValueError as e:
            raise RecordDecodeError("ill-typed field", field=key) from e
    if v is None and default is not None:
        return default
    raise RecordDecodeError("ill-typed field", field=key)


def _token_from_json(obj: Mapping[str, Any]) -> Optional[TokenMetadata]:
    present = [k for k in _TOKEN_FIELDS if k in obj]
    if not present:
        return None
    if len(present) != len(_TOKEN_FIELDS):
        raise RecordDecodeError("partial token metadata", fields=present)
    name, symbol = obj["name"], obj["symbol"]
    if not isinstance(name, str) or not isinstance(symbol, str):
        raise RecordDecodeError("ill-typed token metadata")
    return TokenMetadata(
        name=name,
        symbol=symbol,
        decimals=_int_or(obj["decimals"], None, key="decimals"),
        total_supply=_int_or(obj["totalsupply"], None, key="totalsupply"),
    )


def validate_record_bytes(data: bytes) -> ContractStateRecord:
    """LogStore validator: decode or raise RecordDecodeError."""
    return ContractStateRecord.decode(data)


__all__ = [
    "UNKNOWN_TXID",
    "TokenMetadata",
    "ContractStateRecord",
    "validate_record_bytes",
]
