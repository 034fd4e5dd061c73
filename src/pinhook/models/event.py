"""Event envelope model for inbound webhook notifications."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """A verified webhook event.

    Only ``id`` and ``type`` are validated. ``data`` and every other top-level
    key the sender includes (``object``, ``created``, ``livemode``,
    ``api_version``, ``pending_webhooks``, ...) pass through untyped, so a
    correctly signed envelope is never rejected over its payload shape.

    Attributes:
        id: Opaque event identifier. Redeliveries reuse the same id.
        type: Dotted event type, e.g. "customer.created".
        data: Event payload, passed to handlers exactly as decoded.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(min_length=1, description="Opaque event identifier")
    type: str = Field(min_length=1, description="Dotted event type")
    data: Any = Field(default_factory=dict, description="Event payload")

    @property
    def data_object(self) -> Any:
        """The resource the event is about (``data["object"]``), if present."""
        if isinstance(self.data, dict):
            return self.data.get("object")
        return None


__all__ = ["Event"]
