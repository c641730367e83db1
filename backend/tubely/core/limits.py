"""
Per-route request body ceilings for upload endpoints.

UploadSizeLimitMiddleware is a pure ASGI middleware so it can act before the
application touches the body:

- A declared Content-Length above the route's ceiling is answered with 413
  straight away; the handler never runs.
- Bodies without a trustworthy length (chunked transfer) are counted as they
  stream through receive(); crossing the ceiling raises RequestTooLarge inside
  whatever is reading the body, which the application's exception handler
  turns into a 413 response.
"""

import logging
import re

from collections.abc import Sequence

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tubely.core.exceptions import RequestTooLarge


logger = logging.getLogger(__name__)


def _declared_length(scope: Scope) -> int | None:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


class UploadSizeLimitMiddleware:
    """
    Enforce body ceilings on POST routes matching the configured patterns.

    Args:
        app: The wrapped ASGI application.
        limits: (path regex, max body bytes) pairs. The first full match wins.
    """

    def __init__(self, app: ASGIApp, limits: Sequence[tuple[str, int]]) -> None:
        self.app = app
        self.limits = [(re.compile(pattern), limit) for pattern, limit in limits]

    def limit_for(self, scope: Scope) -> int | None:
        if scope["type"] != "http" or scope.get("method") != "POST":
            return None
        path = scope.get("path", "")
        for pattern, limit in self.limits:
            if pattern.fullmatch(path):
                return limit
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        limit = self.limit_for(scope)
        if limit is None:
            await self.app(scope, receive, send)
            return

        declared = _declared_length(scope)
        if declared is not None and declared > limit:
            logger.warning(
                "Rejected upload with declared body above limit",
                extra={"path": scope.get("path"), "content_length": declared, "limit": limit},
            )
            response = JSONResponse(RequestTooLarge(limit).to_dict(), status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.warning(
                        "Upload body crossed limit while streaming",
                        extra={"path": scope.get("path"), "limit": limit},
                    )
                    raise RequestTooLarge(limit)
            return message

        await self.app(scope, limited_receive, send)
