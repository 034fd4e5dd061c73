"""Configuration management for Pinhook."""

import logging
from datetime import timedelta
from typing import Any, Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# 1 MiB; webhook envelopes are typically a few KiB
DEFAULT_MAX_BODY_BYTES = 1024 * 1024


class Settings(BaseSettings):
    """Pinhook configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the PINHOOK_ prefix. For example:
        PINHOOK_SIGNING_SECRETS='["whsec_current", "whsec_previous"]'
        PINHOOK_TOLERANCE_SECONDS=300

    Settings are frozen once constructed. Build one instance at startup and
    pass it to ``create_app``; tests construct their own instances directly.

    Security Notes:
        - In production (PINHOOK_ENV=production), at least one signing secret
          is required
        - Without a secret in development, every signed request is rejected
        - Secrets are SecretStr and never rendered in reprs or logs
    """

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Signature verification
    signing_secrets: list[SecretStr] = Field(
        default_factory=list,
        description=(
            "Signing secrets in priority order. Several secrets may be active "
            "at once while a secret is being rotated."
        ),
    )
    tolerance_seconds: int = Field(
        default=300,
        ge=1,
        description="Maximum allowed skew between signature timestamp and now",
    )
    signature_header: str = Field(
        default="Stripe-Signature",
        min_length=1,
        description="Request header carrying the t=...,v1=... signature",
    )

    # Raw body capture
    webhook_path: str = Field(
        default="/webhooks/stripe",
        description="Path the webhook endpoint is mounted on",
    )
    capture_paths: list[str] = Field(
        default_factory=list,
        description=(
            "Path patterns eligible for raw body capture. A trailing '*' makes "
            "a prefix match. Defaults to the webhook path when empty."
        ),
    )
    max_body_bytes: int = Field(
        default=DEFAULT_MAX_BODY_BYTES,
        ge=1,
        description="Requests on capture paths larger than this are rejected with 413",
    )

    # Handlers
    handlers: list[str] = Field(
        default_factory=list,
        description=(
            "Declarative handler registrations as 'event.type=package.module[:attr]', "
            "in order. Used when create_app is not given a registry."
        ),
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    @field_validator("signing_secrets", mode="before")
    @classmethod
    def _coerce_single_secret(cls, value: Any) -> Any:
        """Accept a single secret string as a one-element list."""
        if isinstance(value, (str, SecretStr)):
            return [value]
        return value

    @field_validator("webhook_path")
    @classmethod
    def _validate_webhook_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"webhook_path must start with '/': {value!r}")
        if value.endswith("/"):
            raise ValueError(f"webhook_path must not end with '/': {value!r}")
        return value

    @field_validator("capture_paths")
    @classmethod
    def _validate_capture_paths(cls, value: list[str]) -> list[str]:
        for pattern in value:
            if not pattern.startswith("/"):
                raise ValueError(f"capture path must start with '/': {pattern!r}")
            if "*" in pattern[:-1]:
                raise ValueError(f"'*' is only allowed at the end of a capture path: {pattern!r}")
        return value

    @field_validator("handlers")
    @classmethod
    def _validate_handlers(cls, value: list[str]) -> list[str]:
        for entry in value:
            event_type, sep, target = entry.partition("=")
            if not sep or not event_type.strip() or not target.strip():
                raise ValueError(
                    f"handler must look like 'event.type=package.module[:attr]': {entry!r}"
                )
        return value

    @model_validator(mode="after")
    def validate_security_settings(self) -> "Settings":
        """Validate signing secrets based on environment.

        - In production, at least one non-empty secret MUST be provided
        - In dev/test, a missing secret only logs a warning
        """
        secrets = [s for s in self.signing_secrets if s.get_secret_value()]
        if len(secrets) != len(self.signing_secrets):
            raise ValueError("signing_secrets must not contain empty values")

        if not secrets:
            if self.env == "production":
                raise ValueError(
                    "PINHOOK_SIGNING_SECRETS must be set in production. "
                    "Copy the endpoint signing secret from the sender's dashboard."
                )
            logger.warning(
                "No signing secrets configured - all webhook requests will be rejected"
            )
        return self

    @property
    def tolerance(self) -> timedelta:
        """Timestamp tolerance as a timedelta."""
        return timedelta(seconds=self.tolerance_seconds)

    @property
    def effective_capture_paths(self) -> tuple[str, ...]:
        """Capture patterns, falling back to the webhook path."""
        if self.capture_paths:
            return tuple(self.capture_paths)
        return (self.webhook_path,)

    @property
    def handler_pairs(self) -> list[tuple[str, str]]:
        """Configured handlers as ``(event_type, import_path)`` pairs."""
        pairs = []
        for entry in self.handlers:
            event_type, _, target = entry.partition("=")
            pairs.append((event_type.strip(), target.strip()))
        return pairs

    def secret_bytes(self) -> tuple[bytes, ...]:
        """Signing secrets as raw bytes, in configured order."""
        return tuple(s.get_secret_value().encode("utf-8") for s in self.signing_secrets)

    model_config = {
        "env_prefix": "PINHOOK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }
