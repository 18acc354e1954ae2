"""
Bookman Web: Exception Hierarchy
================================

What:  Application-specific exceptions, one per failure kind.
How:   Each exception carries a user-facing message and a context dict that is
       logged but never sent to the client. bookman.main maps each request-time
       class to an HTTP status; startup-time classes abort the process.

Exception Hierarchy:
    BookmanError (base)
    ├── ValidationError              → 400 Bad Request
    ├── NotFoundError                → 404 Not Found
    ├── DatabaseError                → 500 Internal Server Error
    │   ├── RowDecodeError           → 500
    │   ├── RollbackError            → 500
    │   └── DatabaseUnavailableError → 503 Service Unavailable
    └── ConfigurationError           → fatal at startup
        ├── CredentialError
        ├── DsnParseError
        └── PoolConnectError
"""

from typing import Any, Dict, Optional


class BookmanError(Exception):
    """
    Base exception for all Bookman errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BookmanError):
    """
    Raised when request input cannot be parsed.

    When:    Non-numeric or out-of-range book id, non-multipart upload body,
             upload part that is not UTF-8 text.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(BookmanError):
    """
    Raised when a requested book does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(BookmanError):
    """
    Raised when a query or statement fails.

    HTTP:    500 Internal Server Error

    The client only ever sees a generic message. The driver error is chained
    (``raise ... from exc``) and summarized in ``context`` for the log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RowDecodeError(DatabaseError):
    """A row came back but did not match the expected shape."""

    def __init__(
        self,
        message: str = "A database row could not be decoded.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RollbackError(DatabaseError):
    """
    Raised when an upload insert failed AND the rollback failed too.

    The exception is chained from the rollback error; the insert error that
    started it all is kept on ``insert_error`` so neither is lost.
    """

    def __init__(
        self,
        insert_error: BaseException,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["insert_error"] = repr(insert_error)
        super().__init__(
            message="The upload failed and could not be rolled back.",
            context=ctx,
        )
        self.insert_error = insert_error


class DatabaseUnavailableError(DatabaseError):
    """
    Raised when no connection to the database could be obtained.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "The database is temporarily unavailable.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(BookmanError):
    """
    Raised while building the process-wide resources at startup.

    Never mapped to an HTTP response: the entry point logs it and exits.
    """


class CredentialError(ConfigurationError):
    """The database password file is missing or unreadable."""


class DsnParseError(ConfigurationError):
    """BOOKMAN_DATABASE_DSN is malformed or uses an unsupported parameter."""


class PoolConnectError(ConfigurationError):
    """The pool could not open its first connection."""
