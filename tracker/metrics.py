from __future__ import annotations

"""
Prometheus metrics for the tracker.

- Records appended to the log (by change kind)
- Attribution outcomes (genesis / matched / inconclusive / unmatched)
- Token probe outcomes per method (ok / fault / empty / shape / error)
- Index size gauges
- JSON-RPC call counters & latency
- A /metrics endpoint (text/plain; version=0.0.4)

Usage
-----
from tracker.metrics import mount_metrics, tracker_metrics

mount_metrics(app)
tracker_metrics.record_appended("Created")
"""

import os
import time
import typing as t

from fastapi import APIRouter, FastAPI
from prometheus_client import (CONTENT_TYPE_LATEST, REGISTRY,
                               CollectorRegistry, Counter, Gauge, Histogram,
                               generate_latest)
from starlette.responses import Response


def _registry() -> CollectorRegistry:
    mp_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
    if mp_dir:
        from prometheus_client import multiprocess  # type: ignore

        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return registry
    return REGISTRY


REG = _registry()


RECORDS_APPENDED = Counter(
    "tracker_records_appended_total",
    "Contract state records appended to the log, by change kind.",
    ["kind"],
    registry=REG,
)
ATTRIBUTIONS = Counter(
    "tracker_attributions_total",
    "Causing-transaction attribution outcomes.",
    ["outcome"],
    registry=REG,
)
TOKEN_PROBES = Counter(
    "tracker_token_probes_total",
    "Read-only token probe invocations by method and outcome.",
    ["method", "outcome"],
    registry=REG,
)
INDEXED_BLOCKS = Gauge(
    "tracker_indexed_blocks",
    "Distinct blocks with at least one contract change in the index.",
    registry=REG,
)
INDEXED_RECORDS = Gauge(
    "tracker_indexed_records",
    "Contract state records held in the in-memory index.",
    registry=REG,
)
LAST_BLOCK = Gauge(
    "tracker_last_persisted_block",
    "Index of the last block processed by on_persist.",
    registry=REG,
)
JSONRPC_CALLS = Counter(
    "tracker_jsonrpc_requests_total",
    "JSON-RPC method calls by method and status.",
    ["method", "status"],
    registry=REG,
)
JSONRPC_LATENCY = Histogram(
    "tracker_jsonrpc_request_duration_seconds",
    "JSON-RPC method latency in seconds.",
    ["method"],
    buckets=(0.001, 0.003, 0.0075, 0.015, 0.03, 0.06, 0.12, 0.25, 0.5, 1, 2, 5),
    registry=REG,
)


class _RpcObservation:
    __slots__ = ("_method", "_start", "_ended")

    def __init__(self, method: str) -> None:
        self._method = method
        self._start = time.perf_counter()
        self._ended = False

    def _finish(self, status: str) -> None:
        if self._ended:
            return
        self._ended = True
        JSONRPC_CALLS.labels(method=self._method, status=status).inc()
        JSONRPC_LATENCY.labels(method=self._method).observe(
            time.perf_counter() - self._start
        )

    def ok(self) -> None:
        self._finish("ok")

    def error(self) -> None:
        self._finish("error")


class _TrackerMetrics:
    def record_appended(self, kind: str) -> None:
        RECORDS_APPENDED.labels(kind=kind).inc()

    def attribution(self, outcome: str) -> None:
        ATTRIBUTIONS.labels(outcome=outcome).inc()

    def token_probe(self, method: str, outcome: str) -> None:
        TOKEN_PROBES.labels(method=method, outcome=outcome).inc()

    def set_index_size(self, blocks: int, records: int) -> None:
        INDEXED_BLOCKS.set(max(0, int(blocks)))
        INDEXED_RECORDS.set(max(0, int(records)))

    def set_last_block(self, index: int) -> None:
        LAST_BLOCK.set(max(0, int(index)))

    def observe_jsonrpc(self, method: str) -> _RpcObservation:
        return _RpcObservation(method)


tracker_metrics = _TrackerMetrics()


def _metrics_handler() -> Response:
    media_type = (
        CONTENT_TYPE_LATEST.decode()
        if isinstance(CONTENT_TYPE_LATEST, (bytes, bytearray))
        else CONTENT_TYPE_LATEST
    )
    return Response(content=generate_latest(REG), media_type=media_type)


def mount_metrics(app: FastAPI) -> None:
    """Mount GET /metrics on the provided FastAPI app."""
    router = APIRouter()
    router.add_api_route(
        "/metrics", _metrics_handler, methods=["GET"], include_in_schema=False
    )
    app.include_router(router)


__all__: t.List[str] = [
    "mount_metrics",
    "tracker_metrics",
    "RECORDS_APPENDED",
    "ATTRIBUTIONS",
    "TOKEN_PROBES",
    "INDEXED_BLOCKS",
    "INDEXED_RECORDS",
    "LAST_BLOCK",
    "JSONRPC_CALLS",
    "JSONRPC_LATENCY",
]
