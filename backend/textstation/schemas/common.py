"""
TextStation Backend — Shared Pydantic Schemas
==============================================

What:  Base model and response types shared by every route.
Why:   The editor client speaks camelCase JSON (mediaScore, createdAt, ...);
       Python code speaks snake_case. CamelModel bridges the two once so
       that individual schemas only declare their fields.

How the aliasing works:
    - alias_generator=to_camel: media_score ↔ mediaScore on the wire
    - populate_by_name=True: services may construct models with snake_case
      keyword arguments
    - FastAPI serializes response_model output by alias, so responses are
      camelCase without any per-route configuration
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for all API schemas: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessResponse(CamelModel):
    """Plain acknowledgement returned by mutation endpoints."""
    success: bool = Field(default=True)


class ConnectionTestResponse(CamelModel):
    """Returned by POST /api/test-connection."""
    success: bool = Field(default=True)
    message: str = Field(description="Human-readable confirmation")


class IdRequest(CamelModel):
    """Request body carrying only a resource ID."""
    id: Optional[str] = Field(default=None, description="Resource identifier")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    The database is critical (unhealthy when unreachable); Drive is optional
    (degraded when credentials are missing).
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    drive: str = Field(description="Drive integration: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
