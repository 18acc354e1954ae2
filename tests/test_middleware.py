"""
Bookman Web: Middleware Unit Tests
==================================

What:  Each middleware in isolation, mounted on a tiny Starlette app.

What we test:
    ✅ Security headers on normal, error, and recovered responses
    ✅ Recovery turns an unexpected exception into a 500 JSON body
    ✅ Compression only for allowlisted content types above the size floor,
       never for partial or already-encoded responses
    ✅ Request ID taken from the client or generated, and echoed back
    ✅ One access-log line per request, none for /health
"""

import logging

import pytest
from httpx import AsyncClient, ASGITransport
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from bookman.config import DEFAULT_CONTENT_SECURITY_POLICY
from bookman.middleware.compress import CompressMiddleware
from bookman.middleware.logging import RequestLoggingMiddleware
from bookman.middleware.recovery import RecoveryMiddleware
from bookman.middleware.request_id import RequestIDMiddleware
from bookman.middleware.security_headers import SecurityHeadersMiddleware, security_headers

LARGE_TEXT = "all work and no play makes jack a dull boy\n" * 100


async def _ok(request):
    return PlainTextResponse("ok")


async def _large_text(request):
    return PlainTextResponse(LARGE_TEXT)


async def _large_image(request):
    return Response(b"\x89PNG" + b"\x00" * 4096, media_type="image/png")


async def _partial_text(request):
    return PlainTextResponse(
        LARGE_TEXT[:1000],
        status_code=206,
        headers={"Content-Range": f"bytes 0-999/{len(LARGE_TEXT)}"},
    )


async def _pre_encoded(request):
    return PlainTextResponse(LARGE_TEXT, headers={"Content-Encoding": "identity"})


async def _missing(request):
    return PlainTextResponse("nope", status_code=404)


async def _boom(request):
    raise RuntimeError("kaboom")


ROUTES = [
    Route("/ok", _ok),
    Route("/large-text", _large_text),
    Route("/large-image", _large_image),
    Route("/partial-text", _partial_text),
    Route("/pre-encoded", _pre_encoded),
    Route("/missing", _missing),
    Route("/boom", _boom),
    Route("/health", _ok),
]


def _client(*middleware):
    app = Starlette(routes=ROUTES, middleware=list(middleware))
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


class TestSecurityHeaders:

    def setup_method(self):
        self.expected = security_headers(DEFAULT_CONTENT_SECURITY_POLICY)

    def test_header_set(self):
        assert set(self.expected) == {
            "Access-Control-Allow-Methods",
            "Content-Security-Policy",
            "Cross-Origin-Opener-Policy",
            "Cross-Origin-Resource-Policy",
            "Permissions-Policy",
            "Referrer-Policy",
            "X-Content-Type-Options",
            "X-Frame-Options",
        }
        assert self.expected["X-Frame-Options"] == "SAMEORIGIN"
        assert self.expected["X-Content-Type-Options"] == "nosniff"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path, status", [("/ok", 200), ("/missing", 404), ("/boom", 500)])
    async def test_headers_on_every_response(self, path, status):
        async with _client(
            Middleware(SecurityHeadersMiddleware, csp=DEFAULT_CONTENT_SECURITY_POLICY),
            Middleware(RecoveryMiddleware),
        ) as client:
            response = await client.get(path)

        assert response.status_code == status
        for name, value in self.expected.items():
            assert response.headers[name] == value

    @pytest.mark.asyncio
    async def test_no_hsts_or_allow_origin(self):
        async with _client(
            Middleware(SecurityHeadersMiddleware, csp=DEFAULT_CONTENT_SECURITY_POLICY),
        ) as client:
            response = await client.get("/ok")

        assert "strict-transport-security" not in response.headers
        assert "access-control-allow-origin" not in response.headers


class TestRecovery:

    @pytest.mark.asyncio
    async def test_exception_becomes_500(self):
        async with _client(Middleware(RecoveryMiddleware)) as client:
            response = await client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert "kaboom" not in response.text

    @pytest.mark.asyncio
    async def test_server_keeps_serving(self):
        async with _client(Middleware(RecoveryMiddleware)) as client:
            await client.get("/boom")
            response = await client.get("/ok")

        assert response.status_code == 200
        assert response.text == "ok"


class TestCompress:

    @pytest.mark.asyncio
    async def test_large_text_is_gzipped(self):
        async with _client(Middleware(CompressMiddleware)) as client:
            response = await client.get("/large-text", headers={"Accept-Encoding": "gzip"})

        assert response.headers["content-encoding"] == "gzip"
        assert "Accept-Encoding" in response.headers["vary"]
        assert response.text == LARGE_TEXT

    @pytest.mark.asyncio
    async def test_image_is_not_gzipped(self):
        async with _client(Middleware(CompressMiddleware)) as client:
            response = await client.get("/large-image", headers={"Accept-Encoding": "gzip"})

        assert "content-encoding" not in response.headers
        assert response.content.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_small_response_is_not_gzipped(self):
        async with _client(Middleware(CompressMiddleware)) as client:
            response = await client.get("/ok", headers={"Accept-Encoding": "gzip"})

        assert "content-encoding" not in response.headers
        assert response.text == "ok"

    @pytest.mark.asyncio
    async def test_partial_content_is_not_gzipped(self):
        async with _client(Middleware(CompressMiddleware)) as client:
            response = await client.get("/partial-text", headers={"Accept-Encoding": "gzip"})

        assert response.status_code == 206
        assert "content-encoding" not in response.headers
        assert response.headers["content-range"] == f"bytes 0-999/{len(LARGE_TEXT)}"
        assert response.text == LARGE_TEXT[:1000]

    @pytest.mark.asyncio
    async def test_encoded_response_left_alone(self):
        async with _client(Middleware(CompressMiddleware)) as client:
            response = await client.get("/pre-encoded", headers={"Accept-Encoding": "gzip"})

        assert response.headers["content-encoding"] == "identity"
        assert response.text == LARGE_TEXT

    @pytest.mark.asyncio
    async def test_client_without_gzip(self):
        async with _client(Middleware(CompressMiddleware)) as client:
            response = await client.get("/large-text", headers={"Accept-Encoding": "identity"})

        assert "content-encoding" not in response.headers
        assert response.text == LARGE_TEXT


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated(self):
        async with _client(Middleware(RequestIDMiddleware)) as client:
            response = await client.get("/ok")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_taken_from_client(self):
        async with _client(Middleware(RequestIDMiddleware)) as client:
            response = await client.get("/ok", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"


class TestRequestLogging:

    @pytest.mark.asyncio
    async def test_logs_one_line(self, caplog):
        caplog.set_level(logging.INFO, logger="bookman.access")
        async with _client(Middleware(RequestLoggingMiddleware)) as client:
            await client.get("/missing")

        records = [r for r in caplog.records if r.name == "bookman.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].status == 404
        assert records[0].path == "/missing"

    @pytest.mark.asyncio
    async def test_health_not_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="bookman.access")
        async with _client(Middleware(RequestLoggingMiddleware)) as client:
            await client.get("/health")

        assert not [r for r in caplog.records if r.name == "bookman.access"]
