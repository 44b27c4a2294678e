"""
JSON-RPC errors for the contract tracker.

This module provides:
- Canonical JSON-RPC 2.0 error codes (parse/invalid request/method not found/invalid params/internal).
- Tracker server codes in the reserved -32000..-32099 range.
- Exception classes that carry (code, message, data).
- `to_error()` to convert arbitrary exceptions into JSON-RPC error envelopes.

Usage (from tracker/rpc/jsonrpc.py):
    from .errors import RpcError, to_error, error_response

    try:
        result = spec.call(params)
        return {"jsonrpc": "2.0", "id": req_id, "result": result}
    except Exception as e:
        return error_response(req_id, to_error(e))

Notes:
- `data` SHOULD be small, stable, and safe to expose. No tracebacks.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Mapping, Optional, Union

from tracker.errors import TrackerError


# ───────────────────────────────────────────────────────────────────────────────
# JSON-RPC 2.0 codes
# ───────────────────────────────────────────────────────────────────────────────

class JsonRpcCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class TrackerCode(IntEnum):
    SERVER_ERROR = -32000
    TEMPORARILY_UNAVAILABLE = -32002


# ───────────────────────────────────────────────────────────────────────────────
# Error dataclass & base exception
# ───────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RpcError(Exception):
    code: int
    message: str
    data: Optional[Mapping[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        err: Dict[str, Any] = {"code": int(self.code), "message": str(self.message)}
        if self.data:
            err["data"] = _safe_jsonable(self.data)
        return err

    def __str__(self) -> str:  # pragma: no cover
        return f"[{self.code}] {self.message} ({self.data})"


class ParseError(RpcError):
    def __init__(self, detail: str = "Parse error", **data: Any) -> None:
        super().__init__(JsonRpcCode.PARSE_ERROR, detail, data or None)

class InvalidRequest(RpcError):
    def __init__(self, detail: str = "Invalid request", **data: Any) -> None:
        super().__init__(JsonRpcCode.INVALID_REQUEST, detail, data or None)

class MethodNotFound(RpcError):
    def __init__(self, method: str) -> None:
        super().__init__(JsonRpcCode.METHOD_NOT_FOUND, "Method not found", {"method": method})

class InvalidParams(RpcError):
    def __init__(self, detail: str = "Invalid params", **data: Any) -> None:
        super().__init__(JsonRpcCode.INVALID_PARAMS, detail, data or None)

class InternalError(RpcError):
    def __init__(self, detail: str = "Internal error", **data: Any) -> None:
        super().__init__(JsonRpcCode.INTERNAL_ERROR, detail, data or None)

class ServerError(RpcError):
    def __init__(self, detail: str = "Server error", **data: Any) -> None:
        super().__init__(TrackerCode.SERVER_ERROR, detail, data or None)

class TemporarilyUnavailable(RpcError):
    def __init__(self, detail: str = "Temporarily unavailable", **data: Any) -> None:
        super().__init__(TrackerCode.TEMPORARILY_UNAVAILABLE, detail, data or None)


# ───────────────────────────────────────────────────────────────────────────────
# Helpers
# ───────────────────────────────────────────────────────────────────────────────

def error_response(req_id: Optional[Union[str, int]], err: RpcError) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "error": err.to_dict()}


def _safe_jsonable(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, Mapping):
        return {str(k): _safe_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_safe_jsonable(x) for x in obj]
    return str(obj)


def to_error(exc: Exception) -> RpcError:
    """
    Convert any Exception into a RpcError.
    - RpcError passes through.
    - TrackerError keeps its code/message as data under a server error.
    - Anything else becomes InternalError with the exception class name only.
    """
    if isinstance(exc, RpcError):
        return exc
    if isinstance(exc, TrackerError):
        return ServerError(exc.message, reason=str(getattr(exc.code, "value", exc.code)), context=dict(exc.data))
    return InternalError(detail="Internal error", reason=exc.__class__.__name__)


__all__ = [
    "RpcError",
    "JsonRpcCode",
    "TrackerCode",
    "ParseError",
    "InvalidRequest",
    "MethodNotFound",
    "InvalidParams",
    "InternalError",
    "ServerError",
    "TemporarilyUnavailable",
    "error_response",
    "to_error",
]
