"""FastAPI REST API for Pinhook.

This module provides the HTTP layer: raw body capture, the signed webhook
endpoint, and a health check.

Example:
    ```python
    import uvicorn
    from pinhook.api import create_app

    app = create_app(registry=registry)
    uvicorn.run(app, host="0.0.0.0", port=8000)
    ```

Or, with handlers declared through PINHOOK_HANDLERS:
    ```bash
    uvicorn --factory pinhook.api:create_app
    ```
"""

from .app import build_pipeline, create_app
from .middleware import RAW_BODY_STATE_KEY, PathMatcher, RawBodyCaptureMiddleware, get_raw_body
from .router import WebhookPipeline, router, system_router

__all__ = [
    "RAW_BODY_STATE_KEY",
    "PathMatcher",
    "RawBodyCaptureMiddleware",
    "WebhookPipeline",
    "build_pipeline",
    "create_app",
    "get_raw_body",
    "router",
    "system_router",
]
