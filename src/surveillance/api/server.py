"""
HTTP server for the pipeline entry points.

Endpoints:
- POST /auto-triage     -> run one triage batch
- POST /sync-archive    -> run one archive sync
- POST /daily-cleanup   -> run the retention cleanup
- POST /analyze-signal  -> ad hoc analysis of free text
- GET  /health          -> liveness and configured providers

Usage:
    uvicorn surveillance.api.server:app --port 8000
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import SurveillanceConfig
from .handlers import (
    handle_analyze_signal,
    handle_auto_triage,
    handle_daily_cleanup,
    handle_health,
    handle_sync_archive,
)
from .services import PipelineServices


logger = logging.getLogger(__name__)


async def _read_body(request: Request) -> Any:
    """Parse the request body as JSON; absent or invalid bodies give None."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.debug("Request body is not valid JSON; using defaults")
        return None


def create_app(services: Optional[PipelineServices] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Pre-built services (tests); built from SurveillanceConfig
            at startup if None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            app.state.services = PipelineServices(SurveillanceConfig())
            logger.info("Pipeline services initialized")
        yield
        if owned:
            app.state.services.close()
            app.state.services = None

    app = FastAPI(
        title="Signal Triage Pipeline",
        version="0.1.0",
        description="Automated triage, archival and retention for surveillance signals",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    async def _dispatch(request: Request, handler: Callable) -> JSONResponse:
        body = await _read_body(request)
        status, payload = await run_in_threadpool(handler, request.app.state.services, body)
        return JSONResponse(status_code=status, content=payload)

    @app.post("/auto-triage")
    async def auto_triage(request: Request):
        return await _dispatch(request, handle_auto_triage)

    @app.post("/sync-archive")
    async def sync_archive(request: Request):
        return await _dispatch(request, handle_sync_archive)

    @app.post("/daily-cleanup")
    async def daily_cleanup(request: Request):
        return await _dispatch(request, handle_daily_cleanup)

    @app.post("/analyze-signal")
    async def analyze_signal(request: Request):
        return await _dispatch(request, handle_analyze_signal)

    @app.get("/health")
    async def health(request: Request):
        status, payload = handle_health(request.app.state.services)
        return JSONResponse(status_code=status, content=payload)

    return app


app = create_app()
