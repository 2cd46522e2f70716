"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .models import HealthResponse
from .routes import migrations
from ..exceptions import MigrationServiceError
from ..services.cancellation import default_run_lock

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Tenant Migrator API",
    description="On-demand V1 to V2 tenant data migration",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(migrations.router, prefix="/api/migrations", tags=["migrations"])


@app.exception_handler(MigrationServiceError)
async def migration_error_handler(request: Request, exc: MigrationServiceError):
    """Report top-level failures as {"error": message}."""
    if exc.status_code >= 500:
        logger.error(f"Migration request failed: {exc.message}")
    else:
        logger.warning(f"Migration request rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", migration_running=default_run_lock.locked)
