"""
Tracker RPC — JSON-RPC 2.0 Dispatcher
=====================================

Features
--------
• JSON-RPC 2.0: single & batch, named & positional params, notifications.
• Structured error mapping (standard codes + tracker codes via tracker.rpc.errors).
• Sync handlers run in the Starlette thread pool so queries do not block the
  event loop and can run concurrently with each other.
• Deterministic responses: {"jsonrpc":"2.0", "id":..., "result":...} or {"error":...}.

This module is framework-light; tracker/rpc/server.py parses the HTTP body and
hands the decoded payload to `dispatch`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from starlette.concurrency import run_in_threadpool

from tracker.metrics import tracker_metrics

from . import methods
from .errors import InvalidParams, InvalidRequest, error_response, to_error

log = logging.getLogger(__name__)

Json = Dict[str, Any]
Params = Union[List[Any], Dict[str, Any]]

_NO_ID = object()  # sentinel for notification


def _validate_id(id_val: Any) -> Any:
    # string, number, or null
    if id_val is None or (
        isinstance(id_val, (str, int, float)) and not isinstance(id_val, bool)
    ):
        return id_val
    raise InvalidRequest("id must be string, number, or null")


def _validate_request_obj(obj: Json) -> Tuple[str, Optional[Params], Any]:
    """
    Validate base request object; returns (method, params, id).
    Raises InvalidRequest on structural errors. Does NOT validate method existence.
    """
    if obj.get("jsonrpc") != "2.0":
        raise InvalidRequest("jsonrpc must be '2.0'")

    method = obj.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequest("method must be a non-empty string")

    params: Optional[Params] = obj.get("params")
    if params is not None and not isinstance(params, (list, dict)):
        raise InvalidParams("params, if present, must be array or object")

    req_id = obj["id"] if "id" in obj else _NO_ID
    if req_id is not _NO_ID:
        _validate_id(req_id)
    return method, params, req_id


def _response_id(obj: Json) -> Any:
    rid = obj.get("id", None)
    try:
        return _validate_id(rid)
    except InvalidRequest:
        return None


async def dispatch_one(obj: Any) -> Optional[Json]:
    """
    Dispatch a single JSON-RPC request object.
    Returns a response object or None (for notifications).
    """
    if not isinstance(obj, dict):
        return error_response(None, InvalidRequest("Request must be an object"))

    name = obj.get("method") if isinstance(obj.get("method"), str) else "?"
    obs = tracker_metrics.observe_jsonrpc(name)
    try:
        method_name, params, req_id = _validate_request_obj(obj)
        spec = methods.resolve(method_name)
        result = await run_in_threadpool(spec.call, params)
    except Exception as exc:
        obs.error()
        err = to_error(exc)
        if "id" not in obj:
            log.debug("error in notification", extra={"method": name, "code": err.code})
            return None
        if err.code == -32603:
            log.exception("unhandled error in JSON-RPC method", extra={"method": name})
        return error_response(_response_id(obj), err)

    obs.ok()
    if req_id is _NO_ID:
        return None
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


async def dispatch(payload: Any) -> Union[Json, List[Json], None]:
    """
    Dispatch a parsed JSON payload (already json.loads'ed).
    Handles single objects and batches.
    """
    if isinstance(payload, list):
        if len(payload) == 0:
            return error_response(None, InvalidRequest("empty batch"))
        results = [await dispatch_one(obj) for obj in payload]
        out = [r for r in results if r is not None]
        return out or None

    if isinstance(payload, dict):
        return await dispatch_one(payload)

    return error_response(None, InvalidRequest("payload must be object or array"))


__all__ = ["dispatch", "dispatch_one"]
