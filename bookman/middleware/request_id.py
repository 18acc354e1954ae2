"""
Bookman Web: Request ID Middleware
==================================

What:  Gives each request a short correlation ID and echoes it back.
How:   Takes X-Request-ID from the client when present, otherwise the first
       8 characters of a fresh UUID4. The ID is stored in a ContextVar (read
       by the access log, the recovery middleware, and the error handlers) and
       returned in the X-Request-ID response header.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# What: coroutine-local storage for the current request ID
# Why: concurrent requests on one event loop must each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Outermost middleware; everything inside can log the request ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # What: client-supplied ID wins so a proxy's correlation ID carries through
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(rid)

        response = await call_next(request)
        # Why: clients quote it when reporting an error
        response.headers["X-Request-ID"] = rid
        return response
