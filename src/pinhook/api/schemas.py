"""Pydantic schemas for API responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class WebhookAck(BaseModel):
    """Acknowledgment for a delivered webhook.

    Both statuses are 2xx, so the sender will not redeliver.

    Attributes:
        status: "ok" if a handler processed the event, "unhandled" if no
            handler is registered for its type.
        event_id: ID of the acknowledged event.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["ok", "unhandled"] = Field(description="Dispatch outcome")
    event_id: str = Field(description="Acknowledged event ID")


class ErrorDetail(BaseModel):
    """Machine-readable error code with a short message."""

    code: str = Field(description="Error code")
    message: str = Field(description="Short diagnostic message")


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response model for health check.

    Attributes:
        status: Service health status.
        version: Pinhook version.
        handler_count: Number of registered event handlers.
        secrets_configured: Number of signing secrets loaded.
    """

    status: Literal["healthy", "unhealthy"] = Field(description="Service health status")
    version: str = Field(description="Pinhook version")
    handler_count: int = Field(ge=0, description="Registered event handlers")
    secrets_configured: int = Field(ge=0, description="Signing secrets loaded")
