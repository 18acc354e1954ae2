"""
Bookman Web: PostgreSQL Book Store
==================================

What:  BookStore implementation over the pooled AsyncEngine.
How:   Five fixed statements, built once at import from the BookRecord table:

           LIST_BOOKS    every book, ordered by name, rank 0
           SEARCH_BOOKS  full-text match, ordered by ts_rank DESC
           BOOK_BODY     one row by id
           INSERT_BOOK   one new book (name, body)
           UPDATE_BOOK   new name and author for an id

       Each call borrows a connection from the pool for its duration only.
       Rows are decoded through the Pydantic schemas; driver errors are
       translated into BookmanError subclasses.
"""

import logging
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Float, bindparam, func, insert, literal_column, select, text, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from bookman.exceptions import (
    BookmanError,
    DatabaseError,
    DatabaseUnavailableError,
    NotFoundError,
    RollbackError,
    RowDecodeError,
)
from bookman.models.book import BookRecord
from bookman.schemas.book import Book, FullBook, UploadedFile
from bookman.services.store_base import BookStore

logger = logging.getLogger(__name__)


# ── Statements ────────────────────────────────────────────────────────────
# What: the same query expression feeds both the WHERE match and the rank
_search_query = func.websearch_to_tsquery(
    literal_column("'english'::regconfig"),
    bindparam("q"),
)
_search_rank = func.ts_rank(BookRecord.search_vector, _search_query, type_=Float).label("rank")

LIST_BOOKS = (
    select(
        BookRecord.id,
        BookRecord.name,
        BookRecord.author,
        literal_column("0::float8", Float).label("rank"),
    )
    .order_by(BookRecord.name)
)

SEARCH_BOOKS = (
    select(BookRecord.id, BookRecord.name, BookRecord.author, _search_rank)
    .where(BookRecord.search_vector.op("@@")(_search_query))
    # What: name breaks ties so equal ranks come back in a stable order
    .order_by(_search_rank.desc(), BookRecord.name)
)

BOOK_BODY = (
    select(BookRecord.id, BookRecord.name, BookRecord.author, BookRecord.body)
    .where(BookRecord.id == bindparam("book_id"))
)

# Executed with {"name": ..., "body": ...}; author takes its column default.
INSERT_BOOK = insert(BookRecord)

UPDATE_BOOK = (
    update(BookRecord)
    .where(BookRecord.id == bindparam("book_id"))
    .values(name=bindparam("new_name"), author=bindparam("new_author"))
)

PING = text("SELECT 1")


def _translate(exc: Exception, operation: str) -> DatabaseError:
    """Map a driver/pool failure to the matching DatabaseError subclass."""
    context = {"operation": operation, "error_type": type(exc).__name__, "error": str(exc)}
    # What: refused sockets and dropped connections mean the database is down, not broken
    if isinstance(exc, OSError) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        return DatabaseUnavailableError(context=context)
    return DatabaseError(context=context)


class PostgresBookStore(BookStore):
    """
    Catalog operations against PostgreSQL.

    The engine is shared by every request; this object holds no other state
    and is safe to use from concurrent tasks.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def _fetch_all(
        self, statement: Any, params: Dict[str, Any], operation: str
    ) -> Sequence[RowMapping]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(statement, params)
                return result.mappings().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Query failed during %s: %s", operation, exc)
            raise _translate(exc, operation) from exc

    async def search(self, q: str) -> List[Book]:
        # What: an empty query lists the whole catalog instead of matching nothing
        if q:
            rows = await self._fetch_all(SEARCH_BOOKS, {"q": q}, "search")
        else:
            rows = await self._fetch_all(LIST_BOOKS, {}, "list")
        logger.debug("search q=%r returned %d rows", q, len(rows))

        try:
            return [Book.model_validate(dict(row)) for row in rows]
        except PydanticValidationError as exc:
            raise RowDecodeError(context={"operation": "search", "error": str(exc)}) from exc

    async def body(self, book_id: int) -> str:
        rows = await self._fetch_all(BOOK_BODY, {"book_id": book_id}, "body")
        if not rows:
            raise NotFoundError(resource="book", resource_id=str(book_id))

        try:
            return FullBook.model_validate(dict(rows[0])).body
        except PydanticValidationError as exc:
            raise RowDecodeError(
                context={"operation": "body", "book_id": book_id, "error": str(exc)}
            ) from exc

    async def upload(self, files: Sequence[UploadedFile]) -> None:
        """
        Insert all files in one transaction.

        Failure handling:
            insert fails, rollback succeeds → DatabaseError (from insert error)
            insert fails, rollback fails    → RollbackError (from rollback error,
                                               insert error on .insert_error)
        """
        try:
            async with self._engine.connect() as conn:
                # What: one transaction for the batch; any failed insert discards all of it
                await conn.begin()
                for index, item in enumerate(files):
                    try:
                        await conn.execute(INSERT_BOOK, {"name": item.name, "body": item.body})
                    except SQLAlchemyError as insert_exc:
                        logger.error(
                            "Insert of upload %d/%d (%r) failed: %s",
                            index + 1, len(files), item.name, insert_exc,
                        )
                        try:
                            await conn.rollback()
                        except SQLAlchemyError as rollback_exc:
                            logger.error("Rollback after failed insert also failed: %s", rollback_exc)
                            raise RollbackError(
                                insert_error=insert_exc,
                                context={"rollback_error": str(rollback_exc)},
                            ) from rollback_exc
                        raise DatabaseError(
                            context={"operation": "upload", "name": item.name, "error": str(insert_exc)},
                        ) from insert_exc
                await conn.commit()
        # Why: errors raised inside the block are already translated
        except BookmanError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Upload transaction failed: %s", exc)
            raise _translate(exc, "upload") from exc

        logger.info("Uploaded %d book(s)", len(files))

    async def edit(self, book_id: int, name: str, author: str) -> None:
        params = {"book_id": book_id, "new_name": name, "new_author": author}
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(UPDATE_BOOK, params)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Edit of book %d failed: %s", book_id, exc)
            raise _translate(exc, "edit") from exc

        # What: an unknown id is not an error; the edit simply changes nothing
        if result.rowcount == 0:
            logger.debug("Edit of book %d matched no rows", book_id)

    async def ping(self) -> None:
        await self._fetch_all(PING, {}, "ping")
