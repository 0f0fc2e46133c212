"""FastAPI application exposing the changelog service over HTTP.

Read-only endpoints mirroring the CLI:
- GET /health                     - Health check for load balancers
- GET /sources                    - Registered tools
- GET /changelog/{key}            - Newest entry (or ?version=X)
- GET /changelog/{key}/versions   - All known versions
- GET /latest                     - Releases from the last 24 hours
- GET /status                     - One summary row per tool

Responses use the same JSON encoding as `agent-changelog --json`.

To run locally:
    uvicorn agent_changelog.main:app --reload --port 8000
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from agent_changelog import __version__
from agent_changelog.config import Settings
from agent_changelog.errors import (
    ChangelogError,
    EmptyResultError,
    FetchError,
    NotFoundError,
)
from agent_changelog.logging_config import get_logger, setup_logging
from agent_changelog.service import ChangelogService

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Application Lifespan (startup/shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the registry and service once at startup."""
    settings = Settings.from_env()
    setup_logging(environment=settings.environment)
    app.state.service = ChangelogService(settings=settings)
    yield


# ---------------------------------------------------------------------------
# FastAPI App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Agent Changelog",
    description="Latest release notes of AI coding assistants",
    version=__version__,
    lifespan=lifespan,
)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.time()
        response = await call_next(request)
        logger.info(
            "request_complete",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_s=round(time.time() - start, 3),
        )
        return response


app.add_middleware(LoggingMiddleware)


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def _status_for(exc: ChangelogError) -> int:
    if isinstance(exc, (NotFoundError, EmptyResultError)):
        return 404
    if isinstance(exc, FetchError):
        return 502
    return 500


@app.exception_handler(ChangelogError)
async def changelog_error_handler(request: Request, exc: ChangelogError) -> JSONResponse:
    """Map our error kinds onto HTTP status codes.

    NotFoundError / EmptyResultError -> 404, FetchError -> 502.
    """
    return JSONResponse(
        status_code=_status_for(exc),
        content={"error": exc.kind, "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _service(request: Request) -> ChangelogService:
    return request.app.state.service


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/sources")
async def list_sources(request: Request) -> list[dict[str, str]]:
    return _service(request).describe_sources()


@app.get("/changelog/{key}")
async def get_changelog(
    key: str, request: Request, version: str | None = None
) -> dict[str, Any]:
    """Newest entry of one source, or the entry matching ?version= exactly."""
    entry = await _service(request).entry(key, version)
    return entry.to_payload()


@app.get("/changelog/{key}/versions")
async def get_versions(key: str, request: Request) -> list[str]:
    return await _service(request).versions(key)


@app.get("/latest")
async def get_latest(request: Request) -> dict[str, Any]:
    """Entries released in the last 24 hours, plus per-source warnings."""
    report = await _service(request).latest()
    return {
        "entries": [entry.to_payload() for entry in report.entries],
        "warnings": [failure.message for failure in report.failures],
    }


@app.get("/status")
async def get_status(request: Request) -> dict[str, Any]:
    report = await _service(request).status()
    return {
        "rows": [row.to_payload() for row in report.rows],
        "warnings": [failure.message for failure in report.failures],
    }
