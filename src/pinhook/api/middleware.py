"""Raw body capture middleware.

Signature verification needs the request body exactly as it arrived. This
ASGI middleware buffers the body of requests on configured paths, stores the
bytes in the request state under ``raw_body``, and replays them to the
application so regular body parsing still works.

Requests on other paths pass straight through with no buffering.
"""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pinhook.config import DEFAULT_MAX_BODY_BYTES
from pinhook.exceptions import BodyTooLargeError
from pinhook.logging import get_logger

logger = get_logger(__name__)

RAW_BODY_STATE_KEY = "raw_body"


class _ClientDisconnected(Exception):
    pass


class PathMatcher:
    """Matches request paths against capture patterns.

    A pattern ending in ``*`` matches every path starting with the text
    before the ``*``. Any other pattern must match the path exactly.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        exact: set[str] = set()
        prefixes: list[str] = []
        for pattern in patterns:
            if pattern.endswith("*"):
                prefixes.append(pattern[:-1])
            else:
                exact.add(pattern)
        self._exact = frozenset(exact)
        self._prefixes = tuple(prefixes)

    def matches(self, path: str) -> bool:
        """Whether ``path`` is eligible for capture."""
        return path in self._exact or (bool(self._prefixes) and path.startswith(self._prefixes))


class RawBodyCaptureMiddleware:
    """ASGI middleware that buffers request bodies on selected paths.

    Example:
        ```python
        app.add_middleware(
            RawBodyCaptureMiddleware,
            paths=["/webhooks/stripe", "/webhooks/connect/*"],
            max_body_bytes=1024 * 1024,
        )
        ```
    """

    def __init__(
        self,
        app: ASGIApp,
        paths: Iterable[str],
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: Downstream ASGI application.
            paths: Capture patterns (exact, or prefix with trailing ``*``).
            max_body_bytes: Larger bodies are rejected with 413.
        """
        if max_body_bytes < 1:
            raise ValueError("max_body_bytes must be positive")
        self.app = app
        self.matcher = PathMatcher(paths)
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.matcher.matches(scope["path"]):
            await self.app(scope, receive, send)
            return

        try:
            body = await self._read_body(scope, receive)
        except BodyTooLargeError as e:
            logger.warning(
                "Webhook request rejected",
                code=e.code,
                path=scope["path"],
                limit=e.limit,
            )
            response = JSONResponse(status_code=413, content=e.to_dict())
            await response(scope, receive, send)
            return
        except _ClientDisconnected:
            logger.debug("Client disconnected before body was read", path=scope["path"])
            return

        scope.setdefault("state", {})[RAW_BODY_STATE_KEY] = body
        await self.app(scope, _replay(body, receive), send)

    async def _read_body(self, scope: Scope, receive: Receive) -> bytes:
        declared = _content_length(scope)
        if declared is not None and declared > self.max_body_bytes:
            raise BodyTooLargeError(self.max_body_bytes)

        chunks: list[bytes] = []
        total = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                raise _ClientDisconnected()
            chunk = message.get("body", b"")
            if chunk:
                total += len(chunk)
                if total > self.max_body_bytes:
                    raise BodyTooLargeError(self.max_body_bytes)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(chunks)


def _content_length(scope: Scope) -> int | None:
    for name, value in scope.get("headers", ()):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields ``body`` once, then defers to ``receive``."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def get_raw_body(request: Request) -> bytes | None:
    """Return the captured raw body, or None if the path was not captured."""
    state = request.scope.get("state") or {}
    return state.get(RAW_BODY_STATE_KEY)
