"""Pinhook exception hierarchy.

Provides structured exceptions for the webhook ingestion pipeline.
All exceptions inherit from PinhookError for easy catching.

Verification errors (malformed header, signature mismatch, stale timestamp)
are raised before an event reaches any handler. Registry errors are raised
while the application is being assembled, never while serving requests.
"""

from __future__ import annotations


class PinhookError(Exception):
    """Base exception for all Pinhook errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "pinhook_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ConfigurationError(PinhookError):
    """Configuration error.

    Raised when required configuration is missing or invalid.
    """

    code: str = "configuration_error"


class WebhookVerificationError(PinhookError):
    """Inbound request failed signature verification.

    Subclasses identify which verification step rejected the request.
    Mapped to HTTP 400 by the API layer.
    """

    code: str = "verification_failed"


class MalformedHeaderError(WebhookVerificationError):
    """Signature header is missing or cannot be parsed.

    Raised when the header has no timestamp, a non-integer timestamp,
    conflicting timestamps, or no signature for the expected scheme.
    """

    code: str = "malformed_header"


class SignatureMismatchError(WebhookVerificationError):
    """No candidate signature matched any configured secret."""

    code: str = "signature_mismatch"

    def __init__(self, message: str = "No signatures found matching the expected signature") -> None:
        super().__init__(message)


class TimestampOutOfToleranceError(WebhookVerificationError):
    """Signature timestamp is too far from the current time.

    Attributes:
        timestamp: Timestamp claimed by the signature header.
        tolerance_seconds: Allowed skew in seconds.
    """

    code: str = "timestamp_out_of_tolerance"

    def __init__(self, timestamp: int, tolerance_seconds: float) -> None:
        self.timestamp = timestamp
        self.tolerance_seconds = tolerance_seconds
        super().__init__(
            f"Timestamp {timestamp} is outside the tolerance of {tolerance_seconds:g}s"
        )


class InvalidPayloadError(PinhookError):
    """Verified body is not a valid event envelope.

    Raised when the body is not JSON, not an object, or lacks id/type.
    """

    code: str = "invalid_payload"


class BodyTooLargeError(PinhookError):
    """Request body exceeds the configured capture limit.

    Attributes:
        limit: Maximum accepted body size in bytes.
    """

    code: str = "body_too_large"

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Request body exceeds {limit} bytes")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "limit": self.limit,
                "message": self.message,
            }
        }


class RawBodyUnavailableError(PinhookError):
    """Raw body was not captured for a webhook request.

    Indicates the capture middleware is not mounted for the webhook path.
    """

    code: str = "raw_body_unavailable"


class RegistryError(PinhookError):
    """Handler registry could not be built."""

    code: str = "registry_error"


class DuplicateHandlerError(RegistryError):
    """Two registrations claim the same event type.

    Attributes:
        event_type: The event type registered more than once.
    """

    code: str = "duplicate_handler"

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Handler already registered for event type: {event_type}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "event_type": self.event_type,
                "message": self.message,
            }
        }


class InvalidRegistrationError(RegistryError):
    """Registration has an invalid event type or handler."""

    code: str = "invalid_registration"
