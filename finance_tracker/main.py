"""
main.py — Finance Tracker FastAPI application entry point.

Start with: uvicorn finance_tracker.main:app --reload --port 8000
"""
import logging
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from finance_tracker.config import settings
from finance_tracker.database import async_engine
from finance_tracker.errors import (
    ErrorDetail,
    ErrorResponse,
    FinanceTrackerError,
    code_for_status,
    error_envelope,
)

# ---------------------------------------------------------------------------
# Logging — configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan — startup & shutdown hooks
# ---------------------------------------------------------------------------
def run_migrations() -> None:
    """Apply Alembic migrations up to head (alembic.ini lives next to this file)."""
    package_dir = os.path.dirname(os.path.abspath(__file__))
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
        cwd=package_dir,
    )
    if result.returncode != 0:
        logger.error("Alembic migration failed:\n%s", result.stderr)
        raise RuntimeError(f"Alembic migration failed: {result.stderr}")
    msg = result.stdout.strip() or "No pending migrations"
    logger.info("Alembic: %s", msg)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Run Alembic migrations (skipped when RUN_MIGRATIONS=false)
    Shutdown:
      1. Dispose the engine's connection pool
    """
    if settings.run_migrations:
        run_migrations()

    logger.info("Finance Tracker v%s starting up", settings.app_version)
    yield

    await async_engine.dispose()
    logger.info("Finance Tracker shutting down")


# ---------------------------------------------------------------------------
# FastAPI application instance
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Finance Tracker API",
    version=settings.app_version,
    description=(
        "Dated snapshots of asset holdings per profile, with admin-approved "
        "access links and previous-entry fallback for the entry form."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ---------------------------------------------------------------------------
# CORS middleware — restricted to frontend origins from settings
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Exception handlers — every error body is an errors.ErrorResponse
# ---------------------------------------------------------------------------
_LOC_ROOTS = ("body", "query", "path")


def _render(status_code: int, envelope: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


@app.exception_handler(FinanceTrackerError)
async def finance_tracker_error_handler(
    request: Request, exc: FinanceTrackerError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _render(exc.status_code, exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body, query and path violations, all of them, as one 400."""
    details = [
        ErrorDetail(
            field=".".join(str(loc) for loc in error["loc"] if loc not in _LOC_ROOTS) or None,
            issue=error["msg"],
        )
        for error in exc.errors()
    ]
    return _render(400, error_envelope("VALIDATION_ERROR", "Request validation failed", details))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    envelope = error_envelope(code_for_status(exc.status_code), str(exc.detail))
    return _render(exc.status_code, envelope)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store failures and bugs: traceback in the log, generic 500 to the caller."""
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    if settings.debug:
        envelope = error_envelope(
            "INTERNAL_ERROR",
            "An unexpected error occurred (debug details included)",
            [ErrorDetail(issue=f"{type(exc).__name__}: {exc}")],
        )
    else:
        envelope = error_envelope("INTERNAL_ERROR", "An unexpected error occurred")
    return _render(500, envelope)


# ---------------------------------------------------------------------------
# Health endpoint (no auth required)
# ---------------------------------------------------------------------------
@app.get("/api/health", tags=["System"])
async def health_check() -> dict:
    """Returns service health status."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from finance_tracker.admin.routes import router as admin_router  # noqa: E402
from finance_tracker.auth.routes import router as auth_router  # noqa: E402
from finance_tracker.analytics.routes import router as analytics_router  # noqa: E402
from finance_tracker.entries.routes import router as entries_router  # noqa: E402
from finance_tracker.profiles.routes import router as profiles_router  # noqa: E402

app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(entries_router)
app.include_router(admin_router)
app.include_router(analytics_router)
