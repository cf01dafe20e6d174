"""
Issue Proxy API

Accepts anonymous issue reports from the web client and files them as GitHub
issues through a GitHub App.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from issue_proxy.config import get_settings
from issue_proxy.middleware import (
    PreflightCORSMiddleware,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
)
from issue_proxy.routers import issues
from issue_proxy.services.http_client import close_shared_client
from issue_proxy.services.rate_limit import SlidingWindowRateLimiter
from issue_proxy.services.secrets import SecretResolver

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    yield
    await close_shared_client()


app = FastAPI(
    title="Issue Proxy API",
    description="Files anonymous issue reports as GitHub issues",
    version="0.1.0",
    lifespan=lifespan,
)

# Process-wide shared state, handed to each request's pipeline
app.state.rate_limiter = SlidingWindowRateLimiter()
app.state.secret_resolver = SecretResolver()

app.add_middleware(SecurityHeadersMiddleware)

# CORS
app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    max_age=3600,
)

# Request ID (added last, outermost middleware)
app.add_middleware(RequestIDMiddleware)

# Routers
app.include_router(issues.router, prefix="/api")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _check_config() -> str:
    """Verify a target repo and a credential path are configured."""
    s = get_settings()
    has_app = bool(s.github_app_id and s.github_installation_id)
    if s.github_repo and (s.github_token or has_app):
        return "ok"
    return "degraded"


@app.get("/api/health")
async def health_check() -> JSONResponse:
    """Health check reporting configuration status."""
    checks = {"config": _check_config()}
    failed = [k for k, v in checks.items() if v != "ok"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded, failed: %s", ", ".join(failed))
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "issue-proxy",
        "version": "0.1.0",
        "checks": checks,
    }
    return JSONResponse(content=result, status_code=200)
