"""Event type to handler registry.

Handlers are declared as an ordered list of registrations and frozen into an
EventRegistry before the first request is served. A registration names a
handler in one of two forms:

- FUNCTION: a callable taking the Event
- MODULE: an object, module, or ``"package.module[:attr]"`` import path
  exposing ``handle_event(event)``

Both forms are normalized into a Handler so the dispatcher never needs to
know which one was used.

Example:
    ```python
    builder = RegistryBuilder()

    @builder.on("customer.created")
    def on_customer_created(event):
        return ok()

    builder.register("invoice.paid", "billing.handlers.invoice_paid")
    registry = builder.build()
    ```
"""

from __future__ import annotations

import importlib
import inspect
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, TypeVar

from pinhook.exceptions import DuplicateHandlerError, InvalidRegistrationError
from pinhook.logging import get_logger
from pinhook.models import Event

logger = get_logger(__name__)

ENTRY_POINT = "handle_event"

F = TypeVar("F", bound=Callable[..., Any])


class HandlerKind(str, Enum):
    """How a handler was declared."""

    FUNCTION = "function"
    MODULE = "module"


@dataclass(frozen=True)
class Handler:
    """Normalized handler capability.

    Attributes:
        kind: Declaration form the handler came from.
        name: Dotted name used in logs.
        target: Callable invoked with the event.
    """

    kind: HandlerKind
    name: str
    target: Callable[[Event], Any] = field(repr=False)

    @property
    def is_async(self) -> bool:
        """Whether invoking the handler returns a coroutine."""
        return inspect.iscoroutinefunction(self.target)

    def invoke(self, event: Event) -> Any:
        """Call the handler with ``event`` and return whatever it returns."""
        return self.target(event)


# Handler, plain callable, object/module with handle_event, or import path
HandlerSpec = Any


@dataclass(frozen=True)
class HandlerRegistration:
    """One ``(event_type, handler)`` declaration."""

    event_type: str
    handler: HandlerSpec


def _qualified_name(obj: object) -> str:
    if inspect.ismodule(obj):
        return obj.__name__
    qualname = getattr(obj, "__qualname__", None) or type(obj).__qualname__
    module = getattr(obj, "__module__", None) or type(obj).__module__
    return f"{module}.{qualname}"


def _import_target(path: str) -> object:
    module_path, _, attr = path.partition(":")
    if not module_path:
        raise InvalidRegistrationError(f"Invalid handler import path: {path!r}")
    try:
        target: object = importlib.import_module(module_path)
    except ImportError as e:
        raise InvalidRegistrationError(f"Cannot import handler module {module_path!r}: {e}") from e

    for part in filter(None, attr.split(".")):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise InvalidRegistrationError(
                f"Handler {path!r} has no attribute {part!r}"
            ) from e
    return target


def resolve_handler(spec: HandlerSpec) -> Handler:
    """Normalize a handler declaration into a Handler.

    Objects exposing a callable ``handle_event`` are MODULE handlers, even if
    they are also callable themselves. Any other callable is a FUNCTION
    handler. Strings are import paths resolved with importlib.

    Args:
        spec: Handler, callable, object with ``handle_event``, or import path.

    Returns:
        The normalized Handler.

    Raises:
        InvalidRegistrationError: If the declaration cannot be resolved.
    """
    if isinstance(spec, Handler):
        return spec

    name: str | None = None
    if isinstance(spec, str):
        name = spec
        spec = _import_target(spec)

    entry = getattr(spec, ENTRY_POINT, None)
    if callable(entry):
        return Handler(
            kind=HandlerKind.MODULE,
            name=name or _qualified_name(spec),
            target=entry,
        )

    if inspect.ismodule(spec):
        raise InvalidRegistrationError(
            f"Handler module {spec.__name__!r} does not define {ENTRY_POINT}(event)"
        )

    if callable(spec):
        return Handler(
            kind=HandlerKind.FUNCTION,
            name=name or _qualified_name(spec),
            target=spec,
        )

    raise InvalidRegistrationError(
        f"Handler must be callable or expose {ENTRY_POINT}(event), got {type(spec).__name__}"
    )


def _validate_event_type(event_type: object) -> str:
    if not isinstance(event_type, str) or not event_type.strip():
        raise InvalidRegistrationError(f"Event type must be a non-empty string, got {event_type!r}")
    if event_type != event_type.strip() or any(c.isspace() for c in event_type):
        raise InvalidRegistrationError(f"Event type must not contain whitespace: {event_type!r}")
    return event_type


class EventRegistry(Mapping[str, Handler]):
    """Immutable mapping of event type to Handler.

    Built once from an ordered list of registrations. There is no way to add
    or remove handlers afterwards, so concurrent lookups need no locking.
    """

    def __init__(self, registrations: Iterable[HandlerRegistration] = ()) -> None:
        """Build the registry.

        Args:
            registrations: Ordered ``(event_type, handler)`` declarations.

        Raises:
            DuplicateHandlerError: If an event type is registered twice.
            InvalidRegistrationError: If an event type or handler is invalid.
        """
        handlers: dict[str, Handler] = {}
        for registration in registrations:
            event_type = _validate_event_type(registration.event_type)
            if event_type in handlers:
                raise DuplicateHandlerError(event_type)
            handlers[event_type] = resolve_handler(registration.handler)

        self._handlers: Mapping[str, Handler] = MappingProxyType(handlers)

        logger.info("Event registry built", handler_count=len(handlers))

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, HandlerSpec]]) -> EventRegistry:
        """Build a registry from ``(event_type, handler)`` tuples."""
        return cls(HandlerRegistration(event_type, handler) for event_type, handler in pairs)

    def lookup(self, event_type: str) -> Handler | None:
        """Return the handler for ``event_type``, or None if unregistered."""
        return self._handlers.get(event_type)

    @property
    def event_types(self) -> tuple[str, ...]:
        """Registered event types in registration order."""
        return tuple(self._handlers)

    def __getitem__(self, event_type: str) -> Handler:
        return self._handlers[event_type]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"EventRegistry({list(self._handlers)!r})"


class RegistryBuilder:
    """Collects registrations in order and builds an EventRegistry.

    Duplicates are rejected as soon as they are registered, so the error
    points at the offending declaration. Once ``build()`` has been called the
    builder refuses further registrations.
    """

    def __init__(self) -> None:
        self._registrations: list[HandlerRegistration] = []
        self._seen: set[str] = set()
        self._built = False

    def register(self, event_type: str, handler: HandlerSpec) -> RegistryBuilder:
        """Declare ``handler`` for ``event_type``.

        Args:
            event_type: Dotted event type, e.g. "customer.created".
            handler: Callable, object with ``handle_event``, or import path.

        Returns:
            The builder, for chaining.

        Raises:
            DuplicateHandlerError: If ``event_type`` was already declared.
            InvalidRegistrationError: If the builder was already built or
                ``event_type`` is invalid.
        """
        if self._built:
            raise InvalidRegistrationError(
                "Registry already built; handlers cannot be added after startup"
            )
        event_type = _validate_event_type(event_type)
        if event_type in self._seen:
            raise DuplicateHandlerError(event_type)
        self._seen.add(event_type)
        self._registrations.append(HandlerRegistration(event_type, handler))
        return self

    def on(self, event_type: str) -> Callable[[F], F]:
        """Decorator form of ``register``."""

        def decorator(func: F) -> F:
            self.register(event_type, func)
            return func

        return decorator

    @property
    def registrations(self) -> tuple[HandlerRegistration, ...]:
        """Declarations collected so far, in order."""
        return tuple(self._registrations)

    def build(self) -> EventRegistry:
        """Freeze the declarations into an EventRegistry.

        A failed build leaves the builder open so registrations can be fixed.
        """
        registry = EventRegistry(self._registrations)
        self._built = True
        return registry
