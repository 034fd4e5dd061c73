"""Webhook ingestion for Pinhook.

Verifies HMAC-signed webhook requests and dispatches the events to
registered handlers.

Example:
    ```python
    from pinhook.models import error, ok
    from pinhook.webhooks import (
        EventDispatcher,
        RegistryBuilder,
        SignatureVerifier,
        construct_event,
    )

    builder = RegistryBuilder()

    @builder.on("customer.created")
    def on_customer_created(event):
        return ok()

    dispatcher = EventDispatcher(builder.build())
    verifier = SignatureVerifier([b"whsec_..."])

    event = construct_event(raw_body, signature_header, verifier)
    result = await dispatcher.dispatch(event)
    ```
"""

from .dispatcher import EventDispatcher
from .registry import (
    EventRegistry,
    Handler,
    HandlerKind,
    HandlerRegistration,
    RegistryBuilder,
    resolve_handler,
)
from .signing import (
    SignatureHeader,
    SignatureVerifier,
    compute_signature,
    construct_event,
    generate_signature_header,
    parse_signature_header,
    verify_signature,
)

__all__ = [
    "EventDispatcher",
    "EventRegistry",
    "Handler",
    "HandlerKind",
    "HandlerRegistration",
    "RegistryBuilder",
    "SignatureHeader",
    "SignatureVerifier",
    "compute_signature",
    "construct_event",
    "generate_signature_header",
    "parse_signature_header",
    "resolve_handler",
    "verify_signature",
]
