"""
Bookman Web: Abstract Book Store
================================

What:  The data-access contract the routes program against.
How:   PostgresBookStore (bookman.services.book_store) implements it over the
       pooled engine; tests substitute an in-memory stub.
Who:   Bound into the AppContext at startup; called by route handlers.

Every method is a coroutine. Failures surface as BookmanError subclasses so
the routes never see a driver exception.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from bookman.schemas.book import Book, UploadedFile


class BookStore(ABC):
    """
    Four catalog operations plus a connectivity check.

    Contract:
        - search() never returns None; zero matches is []
        - body() raises NotFoundError for an unknown id
        - upload() is all-or-nothing
        - edit() does not check that the id exists
    """

    @abstractmethod
    async def search(self, q: str) -> List[Book]:
        """
        List or search books.

        Args:
            q: Search string. Empty lists every book ordered by name (rank 0).
               Non-empty matches name, author, and body, ordered by descending
               relevance rank.

        Raises:
            DatabaseError:  the query failed.
            RowDecodeError: a row did not decode into a Book.
        """
        ...

    @abstractmethod
    async def body(self, book_id: int) -> str:
        """
        Full text of one book.

        Raises:
            NotFoundError:  no book has this id.
            DatabaseError:  the query failed.
            RowDecodeError: the row did not decode.
        """
        ...

    @abstractmethod
    async def upload(self, files: Sequence[UploadedFile]) -> None:
        """
        Insert every file as a new book inside one transaction.

        An empty sequence commits an empty transaction.

        Raises:
            DatabaseError: an insert failed; nothing was stored.
            RollbackError: an insert failed and so did the rollback.
        """
        ...

    @abstractmethod
    async def edit(self, book_id: int, name: str, author: str) -> None:
        """
        Set name and author of a book. Unknown ids are a silent no-op.

        Raises:
            DatabaseError: the update failed.
        """
        ...

    @abstractmethod
    async def ping(self) -> None:
        """
        Cheap connectivity check for GET /health.

        Raises:
            DatabaseError: the database is unreachable.
        """
        ...
