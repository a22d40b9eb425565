from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, Response

from . import __version__
from .api_models import EventModel, StatusResponse
from .events import latest_events, log_event
from .metrics import metrics_content_type, render_metrics
from .reconciler import Reconciler
from .runtime import RuntimeState


def create_app(
    reconciler: Reconciler | None = None,
    *,
    shutdown_grace_s: float = 10.0,
    http_client: httpx.Client | None = None,
) -> FastAPI:
    """HTTP surface of the daemon.

    With a reconciler, the app lifespan owns it: started with the server and
    stopped (waiting up to ``shutdown_grace_s`` for an in-flight cycle) when
    the server shuts down.
    """
    runtime = reconciler.runtime if reconciler is not None else RuntimeState()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if reconciler is not None:
            reconciler.start()
        try:
            yield
        finally:
            log_event("INFO", "received stop signal, attempting graceful shutdown")
            if reconciler is not None:
                await run_in_threadpool(reconciler.stop, shutdown_grace_s)
            if http_client is not None:
                http_client.close()

    app = FastAPI(title="ingressd", version=__version__, lifespan=lifespan)

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz() -> str:
        return "ok"

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=render_metrics(), media_type=metrics_content_type())

    @app.get("/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        snap = runtime.snapshot()
        return StatusResponse(
            **snap,
            records=list(reconciler.records) if reconciler is not None else [],
            poll_interval_s=reconciler.poll_interval_s if reconciler is not None else None,
        )

    @app.get("/events", response_model=list[EventModel])
    def events(limit: int = Query(50, ge=1, le=200)) -> list[EventModel]:
        return [EventModel(**e) for e in latest_events(limit)]

    return app
