from __future__ import annotations

import json
import logging
import typing as t

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from tracker import logging as tlog
from tracker import version as tracker_version
from tracker.config import Config, load_config
from tracker.metrics import mount_metrics
from tracker.rpc import deps
from tracker.rpc import errors as rpc_errors
from tracker.rpc import jsonrpc

if t.TYPE_CHECKING:  # pragma: no cover
    from tracker.plugin import ContractTracker

log = logging.getLogger(__name__)


def _rpc_router() -> APIRouter:
    router = APIRouter()

    @router.post("/rpc")
    async def rpc_endpoint(request: Request) -> Response:
        body = await request.body()
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            err = rpc_errors.ParseError(f"Invalid JSON body: {e}")
            return JSONResponse(rpc_errors.error_response(None, err), status_code=200)

        result = await jsonrpc.dispatch(payload)
        if result is None:
            return Response(status_code=204)
        return JSONResponse(result)

    return router


def create_app(cfg: Config | None = None, tracker: "ContractTracker | None" = None) -> FastAPI:
    """
    Build the FastAPI app with:
      - /rpc  (JSON-RPC)
      - /metrics
      - /healthz, /version

    `tracker` is installed for method handlers; the caller keeps ownership
    and closes it.
    """
    cfg = cfg or load_config()
    if tracker is not None:
        deps.set_tracker(tracker)

    app = FastAPI(
        title="Contract Tracker JSON-RPC",
        version=tracker_version.__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.rpc.cors_allow_origins or [],
        allow_credentials=False,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.get("/healthz")
    async def healthz() -> JSONResponse:
        try:
            deps.get_tracker()
        except rpc_errors.TemporarilyUnavailable:
            return JSONResponse(
                {"ok": False, "version": tracker_version.__version__}, status_code=503
            )
        return JSONResponse({"ok": True, "version": tracker_version.__version__})

    @app.get("/version")
    async def version() -> JSONResponse:
        return JSONResponse(
            {
                "version": tracker_version.__version__,
                "build": tracker_version.version_with_git(),
            }
        )

    app.include_router(_rpc_router())
    mount_metrics(app)
    return app


# -----------------------------------------------------------------------------
# Entrypoint (uvicorn)
# -----------------------------------------------------------------------------
def serve(cfg: Config, tracker: "ContractTracker") -> None:
    app = create_app(cfg, tracker)
    # Lazy import uvicorn so the module is importable in tests without uvicorn installed
    import uvicorn

    log.info(
        "RPC server starting",
        extra={"db": cfg.db_uri, "host": cfg.rpc.host, "port": cfg.rpc.port},
    )
    uvicorn.run(
        app,
        host=cfg.rpc.host,
        port=cfg.rpc.port,
        log_level=cfg.log.level.lower(),
        log_config=None,
        workers=1,
    )


def main() -> None:
    from tracker.plugin import ContractTracker
    from tracker.vm import OfflineInvoker

    cfg = load_config()
    tlog.configure_from_config(cfg)
    with ContractTracker(cfg, invoker=OfflineInvoker()) as tracker:
        serve(cfg, tracker)


if __name__ == "__main__":
    main()
