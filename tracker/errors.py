"""
Contract Tracker — tracker.errors
---------------------------------

A small, consistent error system for the tracker.

- One root `TrackerError` with machine-friendly `code` and optional `data`.
- Concrete subclasses for the domains the tracker touches (config, db,
  record codec, contract invocation).
- Safe JSON representation (`to_dict`) suitable for logs and RPC bridges.

Several failure modes are deliberately *not* errors: a gap or a corrupt record
during replay ends the log, a failed token probe drops the metadata, and an
inconclusive attribution stores an empty txid. Those paths log and move on.

This module uses only stdlib to avoid import cycles at boot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar


class Severity(IntEnum):
    """Optional severity hint for operators/metrics."""

    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class TrackerErrorCode(str, Enum):
    INTERNAL = "TRACKER/INTERNAL"
    CONFIG = "TRACKER/CONFIG"

    SERIALIZATION = "TRACKER/SERIALIZATION"
    DESERIALIZATION = "TRACKER/DESERIALIZATION"
    RECORD_DECODE = "TRACKER/RECORD_DECODE"

    DB = "TRACKER/DB"
    DB_NOT_FOUND = "TRACKER/DB_NOT_FOUND"

    INVOCATION = "TRACKER/INVOCATION"


@dataclass(eq=False)
class TrackerError(Exception):
    """
    Root error for tracker components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see TrackerErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (ids, hashes). Must be JSON-serializable.
    severity: Severity
        Optional severity hint (default ERROR).
    retryable: bool
        Whether the operation may succeed on retry without changing inputs.
    cause: Optional[BaseException]
        Wrapped original exception; not part of equality.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.ERROR
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def add_context(self, **ctx: Any) -> "TrackerError":
        """Merge extra context into `data` in place and return self (for raise chains)."""
        self.data.update(_jsonmap(ctx))
        return self

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs/RPC bridges."""
        out = {
            "code": str(getattr(self.code, "value", self.code)),
            "message": self.message,
            "data": _coerce_json(self.data),
            "severity": int(self.severity),
            "retryable": self.retryable,
        }
        if include_cause and self.cause is not None:
            out["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return out

    def __str__(self) -> str:  # pragma: no cover - human formatting
        code = getattr(self.code, "value", self.code)
        parts = [f"{code}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class InternalError(TrackerError):
    def __init__(self, message="internal error", **data: Any) -> None:
        super().__init__(
            code=TrackerErrorCode.INTERNAL, message=message, data=_jsonmap(data)
        )


class ConfigError(TrackerError):
    def __init__(self, message="invalid configuration", **data: Any) -> None:
        super().__init__(
            code=TrackerErrorCode.CONFIG,
            message=message,
            data=_jsonmap(data),
            retryable=False,
        )


class SerializationError(TrackerError):
    def __init__(self, message="serialization failed", **data: Any) -> None:
        super().__init__(
            code=TrackerErrorCode.SERIALIZATION, message=message, data=_jsonmap(data)
        )


class DeserializationError(TrackerError):
    def __init__(self, message="deserialization failed", **data: Any) -> None:
        super().__init__(
            code=TrackerErrorCode.DESERIALIZATION,
            message=message,
            data=_jsonmap(data),
        )


class RecordDecodeError(DeserializationError):
    """A persisted contract-state record could not be decoded."""

    def __init__(self, message="malformed contract state record", **data: Any) -> None:
        super().__init__(message, **data)
        self.code = TrackerErrorCode.RECORD_DECODE


class DatabaseError(TrackerError):
    def __init__(
        self, message="database error", retryable: bool = True, **data: Any
    ) -> None:
        super().__init__(
            code=TrackerErrorCode.DB,
            message=message,
            data=_jsonmap(data),
            retryable=retryable,
        )


class RecordNotFound(DatabaseError):
    def __init__(self, sequence_id: int) -> None:
        super().__init__(message="not found", retryable=False, sequence_id=sequence_id)
        self.code = TrackerErrorCode.DB_NOT_FOUND


class InvocationError(TrackerError):
    """The execution engine raised while running a read-only contract call."""

    def __init__(self, message="contract invocation failed", **data: Any) -> None:
        super().__init__(
            code=TrackerErrorCode.INVOCATION,
            message=message,
            data=_jsonmap(data),
            severity=Severity.WARNING,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

T = TypeVar("T", bound=TrackerError)


def wrap(exc: BaseException, *, as_: Type[T] = InternalError, **ctx: Any) -> T:
    """
    Wrap any exception into a TrackerError subclass, attaching context.
    If `exc` is already a TrackerError, the context is merged into it.
    """
    if isinstance(exc, TrackerError):
        return exc.add_context(**ctx)  # type: ignore[return-value]
    err = as_(str(exc) or type(exc).__name__, **ctx)  # type: ignore[call-arg]
    err.cause = exc
    return err


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; stringify the rest.
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (list, tuple)):
        return [_coerce_json(i) for i in v]
    if isinstance(v, dict):
        return {str(k): _coerce_json(i) for k, i in v.items()}
    if isinstance(v, (bytes, bytearray)):
        return v.hex()
    try:
        return str(v)
    except Exception:
        return "<unprintable>"


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "Severity",
    "TrackerErrorCode",
    "TrackerError",
    "InternalError",
    "ConfigError",
    "SerializationError",
    "DeserializationError",
    "RecordDecodeError",
    "DatabaseError",
    "RecordNotFound",
    "InvocationError",
    "wrap",
]
