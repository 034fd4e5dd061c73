"""Dispatch verified events to registered handlers.

The dispatcher turns whatever a handler does into one of three outcomes:

- Ok: handler returned the success marker
- Error(reason): handler returned an error marker, raised, or returned
  anything else (reason "handler_fault" for the last two)
- Unhandled: no handler registered for the event type

It never lets a handler exception escape, so a misbehaving handler cannot
take down the request pipeline.
"""

from __future__ import annotations

import inspect
import time

from fastapi.concurrency import run_in_threadpool

from pinhook.logging import get_logger
from pinhook.models import DispatchResult, Error, Event, Ok, Unhandled, handler_fault

from .registry import EventRegistry, Handler

logger = get_logger(__name__)


class EventDispatcher:
    """Routes events to handlers from an EventRegistry.

    Handlers run to completion before ``dispatch`` returns, so the sender
    gets its response only after the handler finished. Coroutine handlers are
    awaited on the calling task; plain callables run in the threadpool so a
    blocking handler only holds up its own request. No timeout is applied
    here; bound request time at the server if needed.

    Example:
        ```python
        dispatcher = EventDispatcher(registry)
        result = await dispatcher.dispatch(event)
        if isinstance(result, Error):
            ...  # respond with a retry-eliciting status
        ```
    """

    def __init__(self, registry: EventRegistry) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Immutable event type to handler mapping.
        """
        self._registry = registry

    @property
    def registry(self) -> EventRegistry:
        """The registry events are routed through."""
        return self._registry

    async def dispatch(self, event: Event) -> DispatchResult:
        """Dispatch ``event`` to its handler.

        Args:
            event: Verified event.

        Returns:
            Ok, Error, or Unhandled. Never raises for handler failures.
        """
        handler = self._registry.lookup(event.type)
        if handler is None:
            logger.info("No handler registered for event", event_id=event.id, event_type=event.type)
            return Unhandled(event_type=event.type)

        start = time.perf_counter()
        try:
            returned = await self._invoke(handler, event)
        except Exception as e:
            result: DispatchResult = handler_fault(f"{type(e).__name__}: {e}")
            logger.exception(
                "Webhook handler raised",
                event_id=event.id,
                event_type=event.type,
                handler=handler.name,
            )
        else:
            result = self._interpret(handler, event, returned)

        duration_ms = int((time.perf_counter() - start) * 1000)
        if isinstance(result, Ok):
            logger.info(
                "Webhook handled",
                event_id=event.id,
                event_type=event.type,
                handler=handler.name,
                duration_ms=duration_ms,
            )
        else:
            logger.warning(
                "Webhook handler failed",
                event_id=event.id,
                event_type=event.type,
                handler=handler.name,
                reason=result.reason,
                detail=result.detail,
                duration_ms=duration_ms,
            )
        return result

    async def _invoke(self, handler: Handler, event: Event) -> object:
        if handler.is_async:
            returned = handler.invoke(event)
        else:
            returned = await run_in_threadpool(handler.invoke, event)
        # Callable objects with an async __call__ are not coroutine functions
        if inspect.isawaitable(returned):
            returned = await returned
        return returned

    @staticmethod
    def _interpret(handler: Handler, event: Event, returned: object) -> DispatchResult:
        if isinstance(returned, (Ok, Error)):
            return returned
        return handler_fault(
            f"{handler.name} returned unrecognized value of type {type(returned).__name__}"
        )
