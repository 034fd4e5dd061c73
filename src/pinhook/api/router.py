"""FastAPI routers for the webhook endpoint and health check."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from pinhook import __version__
from pinhook.config import Settings
from pinhook.exceptions import RawBodyUnavailableError
from pinhook.logging import event_context, get_logger
from pinhook.models import Error, Unhandled
from pinhook.webhooks import EventDispatcher, SignatureVerifier, construct_event

from .middleware import get_raw_body
from .schemas import ErrorResponse, HealthResponse, WebhookAck

logger = get_logger(__name__)

router = APIRouter()
system_router = APIRouter()


@dataclass(frozen=True)
class WebhookPipeline:
    """Per-application webhook components, built once at startup."""

    settings: Settings
    verifier: SignatureVerifier
    dispatcher: EventDispatcher


async def get_pipeline(request: Request) -> WebhookPipeline:
    """Dependency to get the application's WebhookPipeline."""
    pipeline: WebhookPipeline | None = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook pipeline not initialized",
        )
    return pipeline


PipelineDep = Annotated[WebhookPipeline, Depends(get_pipeline)]


@router.post(
    "",
    response_model=WebhookAck,
    responses={
        400: {"model": ErrorResponse, "description": "Signature or payload rejected"},
        413: {"model": ErrorResponse, "description": "Body too large"},
        500: {"model": ErrorResponse, "description": "Handler failed; sender should retry"},
    },
    tags=["webhooks"],
)
async def receive_webhook(request: Request, pipeline: PipelineDep) -> WebhookAck | JSONResponse:
    """Verify and dispatch an inbound webhook.

    Verification runs on the captured raw body before anything is parsed.
    Rejected requests never reach a handler. Handler errors produce a 500 so
    the sender redelivers; Ok and Unhandled produce a 200.

    Raises:
        RawBodyUnavailableError: If the capture middleware skipped this path.
        WebhookVerificationError: If the signature header is rejected.
        InvalidPayloadError: If the verified body is not an event.
    """
    raw_body = get_raw_body(request)
    if raw_body is None:
        raise RawBodyUnavailableError(
            f"Raw body was not captured for {request.url.path}; "
            "add the path to PINHOOK_CAPTURE_PATHS"
        )

    header_value = request.headers.get(pipeline.settings.signature_header)
    event = construct_event(raw_body, header_value, pipeline.verifier)

    with event_context(event.id, event.type):
        result = await pipeline.dispatcher.dispatch(event)

    if isinstance(result, Error):
        # Fault details stay in the logs
        code = "handler_fault" if result.is_fault else "handler_error"
        message = "Handler failed to process event" if result.is_fault else result.reason
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": code, "message": message}},
        )

    return WebhookAck(
        status="unhandled" if isinstance(result, Unhandled) else "ok",
        event_id=event.id,
    )


@system_router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check(request: Request) -> HealthResponse:
    """Check service health.

    Unhealthy when the pipeline is missing or no signing secret is loaded,
    since every webhook would be rejected.
    """
    pipeline: WebhookPipeline | None = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        return HealthResponse(
            status="unhealthy",
            version=__version__,
            handler_count=0,
            secrets_configured=0,
        )

    secret_count = pipeline.verifier.secret_count
    return HealthResponse(
        status="healthy" if secret_count else "unhealthy",
        version=__version__,
        handler_count=len(pipeline.dispatcher.registry),
        secrets_configured=secret_count,
    )
