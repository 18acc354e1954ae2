"""
Bookman Web: Application Package
================================

What:  HTTP backend for a small book catalog (search, read, upload, edit).
How:   FastAPI routes on top of an async SQLAlchemy engine talking to PostgreSQL.

Layout:

    ┌─────────────────────────────────────┐
    │        Middleware (ASGI chain)      │  ← request id, logging, headers,
    │                                     │    recovery, compression
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← parse request, call the store
    ├─────────────────────────────────────┤
    │        Services (BookStore)         │  ← four catalog operations
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy table + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Pool Provider)     │  ← AsyncEngine + connection pool
    └─────────────────────────────────────┘

Routes never import the database module directly. They receive an AppContext
when they are built (see bookman.context), so every handler has its store
bound before the first request arrives.
"""

__version__ = "1.0.0"
