"""
Bookman Web: Pydantic Schemas
=============================

What:  The API contract: what the store returns and what the routes serialize.
How:   Pydantic models validate rows coming out of the database (a row that does
       not fit raises RowDecodeError in the store) and serialize responses.

Book field order is part of the wire format:
    {"id": 1, "name": "foo", "author": "", "rank": 0.0}
"""

from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Catalog Models
# ══════════════════════════════════════════════════════════════════════════


class Book(BaseModel):
    """
    One search/list result.

    rank is the ts_rank relevance score for a search and 0 for a plain listing.
    """
    id: int = Field(description="Book identifier")
    name: str = Field(description="Book name")
    author: str = Field(description="Author name")
    rank: float = Field(default=0.0, description="Search relevance; 0 when listing")

    model_config = {"from_attributes": True}


class FullBook(BaseModel):
    """A single book including its full text."""
    id: int
    name: str
    author: str
    body: str

    model_config = {"from_attributes": True}


class UploadedFile(BaseModel):
    """
    One text file taken from a multipart upload.

    Lives only for the duration of the request: built by the upload route,
    consumed by BookStore.upload().
    """
    name: str = Field(description="Filename with the .txt suffix removed")
    body: str = Field(description="Decoded file contents")


# ══════════════════════════════════════════════════════════════════════════
# Error & Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Body of every error response.

    Example:
        {
            "error": "validation_error",
            "message": "Book ID 'abc' is not a number",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health."""
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
