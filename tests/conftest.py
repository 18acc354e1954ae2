"""
Bookman Web: Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   No test needs a real database. Route tests run the full app over an
       in-memory StubBookStore; store tests drive PostgresBookStore with a
       mocked AsyncEngine.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── password_file:  temp file holding a database password
    ├── settings:       Settings built from a patched BOOKMAN_* environment
    ├── stub_store:     StubBookStore (records calls, returns canned data)
    ├── app:            create_app(settings, store=stub_store)
    ├── test_client:    HTTPX AsyncClient over ASGITransport
    ├── mock_conn:      AsyncConnection stand-in
    └── mock_engine:    AsyncEngine stand-in handing out mock_conn
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from bookman.config import Settings
from bookman.exceptions import NotFoundError
from bookman.main import create_app
from bookman.schemas.book import Book, UploadedFile
from bookman.services.store_base import BookStore


class StubBookStore(BookStore):
    """
    In-memory BookStore for route tests.

    Set ``books``/``bodies`` for canned results, or ``error`` to make every
    call raise. Every call is appended to ``calls`` as (operation, args).
    """

    def __init__(self):
        self.books: List[Book] = []
        self.bodies: Dict[int, str] = {}
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, Any]] = []

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if self.error is not None:
            raise self.error

    async def search(self, q: str) -> List[Book]:
        self._record("search", q)
        return list(self.books)

    async def body(self, book_id: int) -> str:
        self._record("body", book_id)
        if book_id not in self.bodies:
            raise NotFoundError(resource="book", resource_id=str(book_id))
        return self.bodies[book_id]

    async def upload(self, files: Sequence[UploadedFile]) -> None:
        self._record("upload", list(files))

    async def edit(self, book_id: int, name: str, author: str) -> None:
        self._record("edit", book_id, name, author)

    async def ping(self) -> None:
        self._record("ping")


# ══════════════════════════════════════════════════════════════════════════
# Configuration Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def password_file(tmp_path):
    """A password file containing 'secret' plus a trailing newline."""
    path = tmp_path / "password"
    path.write_text("secret\n")
    return str(path)


@pytest.fixture
def clean_env(monkeypatch):
    """Removes every BOOKMAN_* variable so defaults apply."""
    for name in (
        "BOOKMAN_PASSWORD_PATH",
        "BOOKMAN_DATABASE_DSN",
        "BOOKMAN_HTTP_ADDRESS",
        "BOOKMAN_LOG_LEVEL",
        "BOOKMAN_STATIC_DIR",
        "BOOKMAN_CONTENT_SECURITY_POLICY",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def settings(clean_env, password_file):
    clean_env.setenv("BOOKMAN_PASSWORD_PATH", password_file)
    clean_env.setenv("BOOKMAN_DATABASE_DSN", "host=localhost dbname=bookman user=bookman_web")
    clean_env.setenv("BOOKMAN_LOG_LEVEL", "WARNING")
    return Settings()


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def stub_store():
    return StubBookStore()


@pytest.fixture
def app(settings, stub_store):
    return create_app(settings, store=stub_store)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

def _async_context(value):
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


@pytest.fixture
def mock_conn():
    """
    AsyncConnection stand-in.

    Usage:
        mock_conn.execute.return_value = make_result([{"id": 1, ...}])
    """
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.begin = AsyncMock()
    conn.commit = AsyncMock()
    conn.rollback = AsyncMock()
    return conn


@pytest.fixture
def mock_engine(mock_conn):
    """AsyncEngine whose connect() and begin() both yield mock_conn."""
    engine = MagicMock()
    engine.connect = MagicMock(side_effect=lambda: _async_context(mock_conn))
    engine.begin = MagicMock(side_effect=lambda: _async_context(mock_conn))
    engine.dispose = AsyncMock()
    return engine


@pytest.fixture
def make_result():
    """
    Factory for CursorResult stand-ins.

    make_result(rows) → .mappings().all() returns rows, .rowcount is len(rows)
    """
    def _make(rows: List[Dict[str, Any]], rowcount: Optional[int] = None):
        result = MagicMock()
        result.mappings.return_value.all.return_value = rows
        result.rowcount = len(rows) if rowcount is None else rowcount
        return result

    return _make
