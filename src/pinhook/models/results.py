"""Handler and dispatch result types.

A handler returns exactly one of:

- ``OK`` (or ``ok()``): the event was processed
- ``error(reason)``: the event was not processed; the sender should retry

The dispatcher adds a third outcome, ``Unhandled``, for event types with no
registered handler. ``Unhandled`` is acknowledged like ``Ok``.
"""

from __future__ import annotations

from dataclasses import dataclass

# Reason used when a handler raises or returns something other than Ok/Error
HANDLER_FAULT = "handler_fault"


@dataclass(frozen=True, slots=True)
class Ok:
    """Success marker."""


@dataclass(frozen=True, slots=True)
class Error:
    """Failure marker.

    Attributes:
        reason: Short human-readable reason, sent back to the sender.
        detail: Internal diagnostic (logged only, never sent to the sender).
    """

    reason: str
    detail: str | None = None

    @property
    def is_fault(self) -> bool:
        """True when the handler misbehaved rather than reporting an error."""
        return self.reason == HANDLER_FAULT


@dataclass(frozen=True, slots=True)
class Unhandled:
    """No handler is registered for the event type."""

    event_type: str


OK = Ok()

HandlerResult = Ok | Error
DispatchResult = Ok | Error | Unhandled


def ok() -> Ok:
    """Return the success marker."""
    return OK


def error(reason: str) -> Error:
    """Return a failure marker carrying ``reason``."""
    return Error(reason=reason)


def handler_fault(detail: str) -> Error:
    """Failure for a handler that raised or returned an unrecognized value."""
    return Error(reason=HANDLER_FAULT, detail=detail)


def is_acknowledged(result: DispatchResult) -> bool:
    """Whether the sender should treat delivery as successful."""
    return isinstance(result, (Ok, Unhandled))


__all__ = [
    "HANDLER_FAULT",
    "OK",
    "DispatchResult",
    "Error",
    "HandlerResult",
    "Ok",
    "Unhandled",
    "error",
    "handler_fault",
    "is_acknowledged",
    "ok",
]
