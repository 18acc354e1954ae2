"""
Bookman Web: Compression Middleware
===================================

What:  gzip-compresses responses of a fixed set of textual content types.
How:   Starlette's GZipMiddleware with a content-type allowlist in front of
       its GZipResponder. The decision is made on `http.response.start`:

           client does not accept gzip          → pass through
           content type not in the allowlist    → pass through
           206 Partial Content                  → pass through
           response already Content-Encoded     → pass through
           otherwise                            → Starlette's GZipResponder
                                                  (size floor, streaming,
                                                  pathsend, trailers)

Usage:
    app.add_middleware(CompressMiddleware, minimum_size=500, compresslevel=5)
"""

from typing import Iterable

from starlette.datastructures import Headers
from starlette.middleware.gzip import GZipMiddleware, GZipResponder
from starlette.types import ASGIApp, Message, Receive, Scope, Send

# Media types worth compressing; everything else (images, archives, fonts)
# is already compressed or too small to matter.
COMPRESSIBLE_CONTENT_TYPES = (
    "text/html",
    "text/plain",
    "text/css",
    "text/javascript",
    "application/javascript",
    "application/json",
    "text/json",
)


class AllowlistGZipResponder(GZipResponder):
    """
    GZipResponder that only compresses allowlisted media types.

    Responses that must not be compressed are forwarded untouched, message by
    message, without entering Starlette's buffering logic.
    """

    def __init__(
        self,
        app: ASGIApp,
        minimum_size: int,
        compresslevel: int,
        content_types: frozenset,
    ) -> None:
        super().__init__(app, minimum_size, compresslevel)
        self.content_types = content_types
        # What: True once the start message says "leave this response alone"
        self.passthrough = False

    def _must_pass_through(self, message: Message) -> bool:
        headers = Headers(raw=message["headers"])
        # Why: a gzipped body would no longer match Content-Range
        if message["status"] == 206:
            return True
        if "content-encoding" in headers:
            return True
        media_type = headers.get("content-type", "").partition(";")[0].strip().lower()
        return media_type not in self.content_types

    async def send_with_compression(self, message: Message) -> None:
        if message["type"] == "http.response.start" and self._must_pass_through(message):
            self.passthrough = True

        if self.passthrough:
            await self.send(message)
            return

        await super().send_with_compression(message)


class CompressMiddleware(GZipMiddleware):
    """
    GZipMiddleware restricted to COMPRESSIBLE_CONTENT_TYPES.

    compresslevel defaults to 5 rather than Starlette's 9.
    """

    def __init__(
        self,
        app: ASGIApp,
        minimum_size: int = 500,
        compresslevel: int = 5,
        content_types: Iterable[str] = COMPRESSIBLE_CONTENT_TYPES,
    ) -> None:
        super().__init__(app, minimum_size=minimum_size, compresslevel=compresslevel)
        self.content_types = frozenset(t.lower() for t in content_types)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Client cannot decode gzip: nothing to do
        accept_encoding = Headers(scope=scope).get("accept-encoding", "")
        if "gzip" not in accept_encoding:
            await self.app(scope, receive, send)
            return

        responder = AllowlistGZipResponder(
            self.app,
            self.minimum_size,
            self.compresslevel,
            self.content_types,
        )
        await responder(scope, receive, send)
