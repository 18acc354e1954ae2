"""
Bookman Web: Security Headers Middleware
========================================

What:  Adds a fixed set of security headers to every HTTP response.
How:   Pure ASGI middleware that edits the `http.response.start` message, so
       it also covers responses produced further in (static files, recovered
       500s, error handlers).

Headers set:
    Access-Control-Allow-Methods   GET, POST, HEAD, OPTIONS
    Content-Security-Policy        <configured>
    Cross-Origin-Opener-Policy     same-origin
    Cross-Origin-Resource-Policy   same-origin
    Permissions-Policy             camera=(), geolocation=(), ...
    Referrer-Policy                strict-origin-when-cross-origin
    X-Content-Type-Options         nosniff
    X-Frame-Options                SAMEORIGIN

Not set (left to the fronting reverse proxy):
    Access-Control-Allow-Origin
    Strict-Transport-Security
"""

from typing import Dict

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

# What: browser features the catalog UI never uses, all denied
PERMISSIONS_POLICY = (
    "camera=(), geolocation=(), gyroscope=(), magnetometer=(), "
    "microphone=(), midi=(), payment=(), usb=()"
)


def security_headers(csp: str) -> Dict[str, str]:
    """The full header set for a given content security policy."""
    return {
        "Access-Control-Allow-Methods": "GET, POST, HEAD, OPTIONS",
        "Content-Security-Policy": csp,
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Permissions-Policy": PERMISSIONS_POLICY,
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
    }


class SecurityHeadersMiddleware:
    """
    Stamps security headers onto every response.

    Usage:
        app.add_middleware(SecurityHeadersMiddleware, csp="default-src 'self'")
    """

    def __init__(self, app: ASGIApp, csp: str) -> None:
        self.app = app
        # What: built once; every response gets the same set
        self.headers = security_headers(csp)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            # What: only the start message carries headers; body chunks pass through
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                # Why: overwrite, so a handler cannot weaken the policy
                for key, value in self.headers.items():
                    headers[key] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)
