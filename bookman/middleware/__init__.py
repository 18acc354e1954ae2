# Middleware package init
"""
Bookman Web: Middleware Package
===============================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Security Headers] → [Recovery]
            → [Compression] → exception handlers → Route Handler

    1. Request ID: correlation ID in a ContextVar and X-Request-ID header
    2. Logging: one access line per request, with status and duration
    3. Security Headers: fixed header set on every response
    4. Recovery: unexpected exception → 500 JSON
    5. Compression: gzip for textual content types

Security headers wrap recovery so that recovered 500 responses carry them too.
Handlers get the store from the AppContext they were built with, so no
middleware injects it per request.
"""
