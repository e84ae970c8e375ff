"""FastAPI application exposing the transcode pipeline over HTTP."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ffmpeg_gateway import __version__
from ffmpeg_gateway.api.schemas import (
    ExecuteCommandRequest,
    ExecuteTaskRequest,
    validation_details,
)
from ffmpeg_gateway.config import Settings
from ffmpeg_gateway.pipeline.models import ExecutionResult
from ffmpeg_gateway.pipeline.service import TaskInput, new_request_id
from ffmpeg_gateway.runtime import GatewayRuntime

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
HEALTH_WORKERS = 2


def create_app(runtime: GatewayRuntime | None = None) -> FastAPI:
    """Build the app; a runtime built here is shut down with the app."""

    owns_runtime = runtime is None
    gateway = runtime or GatewayRuntime(Settings.from_env())

    @asynccontextmanager
    async def lifespan(app_: FastAPI) -> AsyncIterator[None]:
        # Health probes never share threads with the execute endpoints.
        app_.state.health_executor = ThreadPoolExecutor(
            max_workers=HEALTH_WORKERS,
            thread_name_prefix="health",
        )
        yield
        app_.state.health_executor.shutdown(wait=False)
        if owns_runtime:
            gateway.shutdown()

    app = FastAPI(
        title="ffmpeg-gateway",
        description="Run ffmpeg commands and publish the produced files",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(gateway.settings.server.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):  # noqa: ANN001, ANN202
        # Always minted here: the id names the request's workspace directory.
        request_id = new_request_id()
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        _: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Validation failed",
                "errorType": "validation",
                "details": validation_details(list(exc.errors())),
            },
        )

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        loop = asyncio.get_running_loop()
        status_code, payload = await loop.run_in_executor(
            request.app.state.health_executor,
            gateway.health,
        )
        return JSONResponse(status_code=status_code, content=payload)

    @app.post("/execute-ffmpeg")
    def execute_ffmpeg(body: ExecuteCommandRequest, request: Request) -> JSONResponse:
        result = gateway.pipeline.execute(body.command, request.state.request_id)
        return _result_response(result)

    @app.post("/execute-llmpeg")
    def execute_llmpeg(body: ExecuteTaskRequest, request: Request) -> JSONResponse:
        result = gateway.pipeline.execute_task(
            body.task,
            [TaskInput(url=item.url, name=item.name) for item in body.inputs],
            translator=gateway.translator,
            request_id=request.state.request_id,
        )
        return _result_response(result)

    return app


def _result_response(result: ExecutionResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.to_payload())
