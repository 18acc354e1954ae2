"""
Bookman Web: Book SQLAlchemy Model
==================================

What:  ORM mapping of the `books` table.
Who:   The statements in bookman.services.book_store are built from it, and
       Alembic reads its metadata.

Table Design:
    - id: identity column; stable once assigned, never reused
    - name / author / body: plain TEXT, author defaults to '' (uploads only
      supply name and body)
    - search_vector: stored generated tsvector over name (A), author (B) and
      body (C); GIN-indexed for the ranked search
    - books_name_idx: the unfiltered listing is ordered by name
"""

from sqlalchemy import Computed, Identity, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column

from bookman.database import Base

# Shared with the 001 migration; both must produce the same column.
SEARCH_VECTOR_EXPRESSION = (
    "setweight(to_tsvector('english', coalesce(name, '')), 'A') || "
    "setweight(to_tsvector('english', coalesce(author, '')), 'B') || "
    "setweight(to_tsvector('english', coalesce(body, '')), 'C')"
)


class BookRecord(Base):
    """
    One book in the catalog.

    Query Patterns:
        - List all:  SELECT ... ORDER BY name            → books_name_idx
        - Search:    WHERE search_vector @@ tsquery
                     ORDER BY ts_rank(...) DESC          → books_search_idx (GIN)
        - Body:      WHERE id = :id                      → primary key
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(
        Integer,
        Identity(always=False),
        primary_key=True,
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)

    author: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    # Maintained by PostgreSQL; never written by the application.
    search_vector: Mapped[str] = mapped_column(
        TSVECTOR,
        Computed(SEARCH_VECTOR_EXPRESSION, persisted=True),
        nullable=True,
    )

    __table_args__ = (
        Index("books_name_idx", "name"),
        Index("books_search_idx", "search_vector", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<BookRecord(id={self.id}, name='{self.name}')>"
