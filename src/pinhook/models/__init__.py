"""Data models for Pinhook.

Event Model:
    - Event: Verified webhook envelope (id, type, data, extras)

Result Types:
    - Ok / Error: What a handler returns
    - Unhandled: Dispatch outcome for event types with no handler
    - DispatchResult: Ok | Error | Unhandled
"""

from .event import Event
from .results import (
    HANDLER_FAULT,
    OK,
    DispatchResult,
    Error,
    HandlerResult,
    Ok,
    Unhandled,
    error,
    handler_fault,
    is_acknowledged,
    ok,
)

__all__ = [
    # Event
    "Event",
    # Results
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
