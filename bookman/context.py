"""
Bookman Web: Application Context
================================

What:  The handles every request needs, bundled once at startup.
How:   bookman.main builds one AppContext and passes it to each router builder
       (bookman.routes.books.build_api_router(ctx), ...). Handlers close over
       it, so there is no per-request lookup and no global state.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from bookman.config import Settings
from bookman.services.store_base import BookStore


@dataclass(frozen=True)
class AppContext:
    """
    Process-wide handles shared by all requests.

    Attributes:
        settings: Immutable configuration.
        store:    Data-access layer used by the handlers.
        engine:   The pooled engine behind the store, or None when the store
                  was injected (tests). Only the lifespan touches it.
    """
    settings: Settings
    store: BookStore
    engine: Optional[AsyncEngine] = None
