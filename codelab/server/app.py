"""
HTTP interface for CodeLab using FastAPI.

Exposes the dispatcher as ``POST /execute`` with the JSON shape the browser
editor expects, plus language discovery and health endpoints.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from .. import __version__
from ..core.config import CodeLabConfig, load_config
from ..core.logging import get_logger
from ..execution.dispatcher import Dispatcher
from ..execution.results import (
    ConfigurationFailure,
    ExecutionResult,
    RuntimeOrCompileFailure,
    Success,
    Timeout,
)
from ..recipes.registry import detect_toolchain_health
from ..recipes.templates import TEMPLATES

logger = get_logger(__name__)


class ExecuteRequest(BaseModel):
    """Body of ``POST /execute``."""

    language: str = Field(min_length=1)
    code: str = Field(min_length=1)


def serialize_result(result: ExecutionResult) -> dict[str, Any]:
    """Translate a result into the wire format used by the editor."""
    if isinstance(result, Success):
        return {"success": True, "output": result.stdout, "stderr": result.stderr}
    if isinstance(result, Timeout):
        return {"success": False, "error": result.message, "stderr": "Process killed."}
    if isinstance(result, RuntimeOrCompileFailure):
        return {"success": False, "error": "Execution Failed", "stderr": result.message}
    if isinstance(result, ConfigurationFailure):
        return {"success": False, "error": result.message}
    raise TypeError(f"Unknown execution result: {result!r}")


def create_app(
    config: CodeLabConfig | None = None,
    *,
    dispatcher: Dispatcher | None = None,
) -> FastAPI:
    """Create a configured FastAPI app."""
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the shared working directory on startup."""
        app.state.dispatcher.working_directory.ensure()
        logger.info(f"Working directory: {app.state.dispatcher.working_directory.path}")
        yield

    app = FastAPI(title="CodeLab", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.dispatcher = dispatcher or Dispatcher.from_config(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request_handler(request: Request, exc: RequestValidationError):
        logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    # Plain def: FastAPI runs it in its threadpool, so a long execution only
    # occupies its own worker thread.
    @app.post("/execute")
    def execute(body: ExecuteRequest, request: Request) -> dict[str, Any]:
        result = request.app.state.dispatcher.execute(body.language, body.code)
        return serialize_result(result)

    @app.get("/languages")
    def languages(request: Request) -> dict[str, Any]:
        registry = request.app.state.dispatcher.registry
        return {
            "languages": [
                {
                    "id": language,
                    "extension": registry[language].extension,
                    "template": TEMPLATES.get(language, ""),
                }
                for language in registry.languages
            ]
        }

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        registry = request.app.state.dispatcher.registry
        toolchains = detect_toolchain_health(registry)
        return {
            "status": "healthy",
            "version": __version__,
            "toolchains": {name: entry.available for name, entry in toolchains.items()},
        }

    static_dir = config.server.static_dir
    if static_dir:
        static_path = Path(static_dir).expanduser()
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")
        else:
            logger.warning(f"Static directory not found, not serving files: {static_path}")

    return app

