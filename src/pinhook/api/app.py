"""FastAPI application for Pinhook."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pinhook import __version__
from pinhook.config import Settings
from pinhook.exceptions import (
    ConfigurationError,
    InvalidPayloadError,
    PinhookError,
    WebhookVerificationError,
)
from pinhook.logging import configure_logging, get_logger
from pinhook.webhooks import EventDispatcher, EventRegistry, SignatureVerifier

from .middleware import PathMatcher, RawBodyCaptureMiddleware
from .router import WebhookPipeline, router, system_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log application start and stop.

    The pipeline is built in ``create_app``, so handler registration errors
    surface before the server starts accepting connections.
    """
    pipeline: WebhookPipeline = app.state.pipeline
    logger.info(
        "Starting Pinhook API",
        webhook_path=pipeline.settings.webhook_path,
        handler_count=len(pipeline.dispatcher.registry),
        secrets_configured=pipeline.verifier.secret_count,
    )
    yield
    logger.info("Pinhook API stopped")


def build_pipeline(settings: Settings, registry: EventRegistry | None = None) -> WebhookPipeline:
    """Build verifier and dispatcher from settings.

    Args:
        settings: Application settings.
        registry: Handler registry. Built from ``settings.handlers`` if None.

    Returns:
        The assembled WebhookPipeline.

    Raises:
        RegistryError: If the configured handlers cannot be registered.
    """
    if registry is None:
        registry = EventRegistry.from_pairs(settings.handler_pairs)

    verifier = SignatureVerifier(settings.secret_bytes(), tolerance=settings.tolerance)
    return WebhookPipeline(
        settings=settings,
        verifier=verifier,
        dispatcher=EventDispatcher(registry),
    )


def create_app(
    settings: Settings | None = None,
    registry: EventRegistry | None = None,
) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.
        registry: Optional handler registry. Built from settings if None.

    Returns:
        Configured FastAPI application.

    Raises:
        ConfigurationError: If the webhook path is not a capture path.
        RegistryError: If the configured handlers cannot be registered.

    Example:
        ```python
        from pinhook.api import create_app
        from pinhook.webhooks import RegistryBuilder

        builder = RegistryBuilder()
        builder.register("customer.created", on_customer_created)

        app = create_app(registry=builder.build())
        # Run with: uvicorn myapp:app
        ```
    """
    if settings is None:
        settings = Settings()

    if not PathMatcher(settings.effective_capture_paths).matches(settings.webhook_path):
        raise ConfigurationError(
            f"Webhook path {settings.webhook_path!r} is not covered by capture paths "
            f"{list(settings.effective_capture_paths)}; signatures could never be verified"
        )

    configure_logging(level=settings.log_level, format=settings.log_format)

    app = FastAPI(
        title="Pinhook",
        description="Signed webhook ingestion and dispatch.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.pipeline = build_pipeline(settings, registry)

    app.add_middleware(
        RawBodyCaptureMiddleware,
        paths=settings.effective_capture_paths,
        max_body_bytes=settings.max_body_bytes,
    )

    @app.exception_handler(WebhookVerificationError)
    async def verification_error_handler(
        request: Request, exc: WebhookVerificationError
    ) -> JSONResponse:
        """Handle rejected signatures with 400 status."""
        logger.warning(
            "Webhook signature rejected", code=exc.code, error=exc.message, path=request.url.path
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(InvalidPayloadError)
    async def invalid_payload_handler(request: Request, exc: InvalidPayloadError) -> JSONResponse:
        """Handle undecodable event bodies with 400 status."""
        logger.warning(
            "Webhook payload rejected", code=exc.code, error=exc.message, path=request.url.path
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(PinhookError)
    async def pinhook_error_handler(request: Request, exc: PinhookError) -> JSONResponse:
        """Handle all other Pinhook errors with 500 status."""
        logger.error("Pinhook error", error=exc.message, code=exc.code, path=request.url.path)
        return JSONResponse(status_code=500, content=exc.to_dict())

    app.include_router(system_router)
    app.include_router(router, prefix=settings.webhook_path)

    return app
