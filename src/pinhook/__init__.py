"""Pinhook: signed webhook ingestion.

Captures the raw body of inbound webhook requests, verifies their HMAC-SHA256
signatures within a timestamp tolerance, and dispatches each verified event
to the handler registered for its type.

Quick Start:
    from pinhook import Settings, ok
    from pinhook.api import create_app
    from pinhook.webhooks import RegistryBuilder

    builder = RegistryBuilder()

    @builder.on("customer.created")
    def on_customer_created(event):
        # Must be idempotent: the sender may redeliver the same event id
        return ok()

    app = create_app(
        Settings(signing_secrets=["whsec_..."]),
        registry=builder.build(),
    )

Handler Results:
    - ok(): processed, respond 200
    - error(reason): not processed, respond 500 so the sender retries
    - anything else, or an exception: treated as error("handler_fault")
    - no handler registered: respond 200 ("unhandled")
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings

# Exceptions
from .exceptions import (
    BodyTooLargeError,
    ConfigurationError,
    DuplicateHandlerError,
    InvalidPayloadError,
    InvalidRegistrationError,
    MalformedHeaderError,
    PinhookError,
    RawBodyUnavailableError,
    RegistryError,
    SignatureMismatchError,
    TimestampOutOfToleranceError,
    WebhookVerificationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    event_context,
    get_logger,
    logger,
    unbind_context,
)

# Models
from .models import OK, Error, Event, Ok, Unhandled, error, ok

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    # Exceptions
    "PinhookError",
    "ConfigurationError",
    "WebhookVerificationError",
    "MalformedHeaderError",
    "SignatureMismatchError",
    "TimestampOutOfToleranceError",
    "InvalidPayloadError",
    "BodyTooLargeError",
    "RawBodyUnavailableError",
    "RegistryError",
    "DuplicateHandlerError",
    "InvalidRegistrationError",
    # Logging
    "configure_logging",
    "event_context",
    "get_logger",
    "logger",
    "bind_context",
    "clear_context",
    "unbind_context",
    # Models
    "Event",
    "OK",
    "Ok",
    "Error",
    "Unhandled",
    "ok",
    "error",
]
