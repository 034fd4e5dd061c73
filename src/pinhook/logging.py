"""Structured logging for Pinhook.

structlog over stdlib logging: JSON lines in production, a console renderer
in development. Request-scoped fields (``event_id``, ``event_type``) live in
contextvars, so concurrent webhook requests never see each other's context.

Signing secrets, signature values, and raw bodies must never reach a log
line. ``redact_sensitive_fields`` runs before rendering and masks any of
those that slip into an event dict by key.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.typing import Processor

REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "body",
        "raw_body",
        "secret",
        "secrets",
        "signature",
        "signature_header",
        "signing_secret",
        "signing_secrets",
    }
)

_configured = False


def redact_sensitive_fields(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask values whose key names a secret, signature, or body."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for Pinhook.

    Safe to call more than once; ``create_app`` calls it with the values from
    Settings, and the last call wins.

    Args:
        level: Log level name. Unknown names fall back to INFO.
        format: "json" for production, "text" for development.

    Example:
        ```python
        from pinhook.logging import configure_logging, get_logger

        configure_logging(level="DEBUG", format="text")
        logger = get_logger(__name__)
        logger.info("Webhook received", event_type="customer.created")
        ```
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger().setLevel(log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_sensitive_fields,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if format.lower() == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)  # type: ignore[no-any-return]


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to every later log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def event_context(event_id: str, event_type: str) -> Iterator[None]:
    """Bind ``event_id`` and ``event_type`` for the duration of the block.

    Keys bound by the caller before entering are restored on exit.

    Example:
        ```python
        with event_context(event.id, event.type):
            result = await dispatcher.dispatch(event)
        ```
    """
    with structlog.contextvars.bound_contextvars(event_id=event_id, event_type=event_type):
        yield


logger = get_logger("pinhook")
