"""Pydantic models for API responses."""

from typing import Any, Dict
from pydantic import BaseModel, Field


class MigrationRunResponse(BaseModel):
    """Successful run summary."""
    success: bool = True
    message: str = "Migration completed"
    stats: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Top-level failure."""
    error: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    migration_running: bool = False
