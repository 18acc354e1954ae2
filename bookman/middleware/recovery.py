"""
Bookman Web: Recovery Middleware
================================

What:  Turns an exception that escaped every handler into a 500 response.
How:   Pure ASGI wrapper around the inner app. If the response has not started
       yet, the exception is logged with its traceback and a generic JSON error
       is sent instead; the server process keeps running. If the response had
       already started there is nothing safe to send, so the exception is
       re-raised for the server to close the connection.

Typed errors (ValidationError, NotFoundError, DatabaseError, ...) never get
here: the exception handlers registered in bookman.main answer those first.
"""

import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from bookman.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RecoveryMiddleware:
    """Last line of defense for unexpected exceptions."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # What: set once http.response.start has gone out to the server
        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_tracking)
        except Exception as exc:
            rid = request_id_var.get("")
            logger.error(
                "[%s] Recovered from unhandled error in %s %s: %s",
                rid,
                scope.get("method", ""),
                scope.get("path", ""),
                exc,
                exc_info=True,
            )
            # Why: headers are already on the wire; only the server can close the connection
            if response_started:
                raise

            response = JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "message": "An unexpected error occurred.",
                    "request_id": rid,
                },
            )
            await response(scope, receive, send)
