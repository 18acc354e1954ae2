"""
Bookman Web: Health Check Route
===============================

What:  GET /health for container orchestrators and load balancers.
How:   Pings the store (SELECT 1 through the pool).

    healthy    database reachable    HTTP 200
    unhealthy  database unreachable  HTTP 503
"""

import logging
import time

from fastapi import APIRouter, Response

from bookman import __version__
from bookman.context import AppContext
from bookman.exceptions import BookmanError
from bookman.schemas.book import HealthResponse

logger = logging.getLogger(__name__)

_start_time = time.time()


def build_health_router(ctx: AppContext) -> APIRouter:
    """Build the health router bound to ``ctx``."""
    router = APIRouter(tags=["Health"])

    @router.get(
        "/health",
        response_model=HealthResponse,
        summary="Service health check",
    )
    async def health_check(response: Response) -> HealthResponse:
        db_status = "connected"
        overall = "healthy"

        try:
            await ctx.store.ping()
        except BookmanError as e:
            db_status = "disconnected"
            overall = "unhealthy"
            response.status_code = 503
            logger.warning("Health check: database unreachable: %s", e.context or e.message)

        return HealthResponse(
            status=overall,
            version=__version__,
            database=db_status,
            uptime_seconds=round(time.time() - _start_time, 2),
        )

    return router
