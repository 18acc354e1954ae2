"""
Bookman Web: Catalog Route Handlers
===================================

What:  The catalog HTTP surface.

    GET  /api/search?q=     → JSON array of Book
    GET  /api/panic         → always fails (exercises the recovery middleware)
    POST /api/upload        → multipart, one part per .txt file → null
    POST /api/edit          → form fields id, name, author → null
    GET  /book/{id}         → text/plain book body

How:   Routers are built per application by build_api_router(ctx) and
       build_book_router(ctx). Handlers close over the AppContext and call
       ctx.store; failures are raised as BookmanError subclasses and turned
       into responses by the handlers registered in bookman.main.
"""

import logging
import re
from typing import List

from fastapi import APIRouter, Form, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.datastructures import UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from bookman.context import AppContext
from bookman.exceptions import ValidationError
from bookman.schemas.book import Book, ErrorResponse, UploadedFile

logger = logging.getLogger(__name__)

# Suffix stripped from uploaded filenames to form the book name.
TEXT_FILE_SUFFIX = ".txt"

# Book ids are stored as 32-bit integers.
MIN_BOOK_ID = -(2**31)
MAX_BOOK_ID = 2**31 - 1

_UNSIGNED_ID = re.compile(r"[0-9]+")
_SIGNED_ID = re.compile(r"[+-]?[0-9]+")

ERROR_RESPONSES = {
    400: {"description": "Malformed request", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


def parse_book_id(raw: str, field: str = "id", signed: bool = False) -> int:
    """
    Parse a book id from a path segment or form field.

    Accepts ASCII digits only (with an optional sign when ``signed``) and
    requires the value to fit in a signed 32-bit integer.

    Raises:
        ValidationError: not a number, or out of range.
    """
    pattern = _SIGNED_ID if signed else _UNSIGNED_ID
    if not pattern.fullmatch(raw):
        raise ValidationError(f"Book ID '{raw}' is not a number", field=field)
    value = int(raw)
    if not MIN_BOOK_ID <= value <= MAX_BOOK_ID:
        raise ValidationError(f"Book ID '{raw}' is out of range", field=field)
    return value


def book_name_from_filename(filename: str) -> str:
    """'foo.txt' → 'foo'; any other name is kept as is."""
    return filename.removesuffix(TEXT_FILE_SUFFIX)


class UploadParser(MultiPartParser):
    """
    Starlette's multipart parser, remembering whether the body was complete.

    python-multipart accepts a stream that stops mid-part; the closing
    boundary is the only proof that every part arrived.
    """

    def __init__(self, headers, stream) -> None:
        # No cap on parts: N files in always means N books out
        super().__init__(headers, stream, max_files=float("inf"), max_fields=float("inf"))
        self.complete = False

    def on_end(self) -> None:
        self.complete = True


async def read_uploaded_files(request: Request) -> List[UploadedFile]:
    """
    Parse a multipart/form-data body into UploadedFile records.

    Parts are spooled by the parser and read one at a time. Non-file fields
    are ignored.

    Raises:
        ValidationError: malformed multipart, body cut off before the closing
                         boundary, or a file that is not UTF-8 text.
    """
    parser = UploadParser(request.headers, request.stream())
    try:
        form = await parser.parse()
    except MultiPartException as exc:
        raise ValidationError(f"Malformed multipart body: {exc.message}") from exc

    files: List[UploadedFile] = []
    try:
        if not parser.complete:
            raise ValidationError(
                "Multipart body ended before its closing boundary",
                context={"parts_received": len(form)},
            )
        for field_name, part in form.multi_items():
            if not isinstance(part, UploadFile):
                continue
            data = await part.read()
            try:
                body = data.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ValidationError(
                    f"File '{part.filename}' is not UTF-8 text",
                    field=field_name,
                ) from exc
            files.append(UploadedFile(name=book_name_from_filename(part.filename or ""), body=body))
    finally:
        # Spooled temp files
        await form.close()

    return files


def build_api_router(ctx: AppContext) -> APIRouter:
    """Build the /api router bound to ``ctx``."""
    router = APIRouter(prefix="/api", tags=["Catalog"])

    @router.get(
        "/search",
        response_model=List[Book],
        responses=ERROR_RESPONSES,
        summary="Search or list books",
    )
    async def search(
        q: str = Query(default="", description="Search string; empty lists every book"),
    ) -> List[Book]:
        """
        Empty q: every book ordered by name, rank 0.
        Non-empty q: matching books ordered by descending rank.
        """
        return await ctx.store.search(q)

    @router.post(
        "/upload",
        responses=ERROR_RESPONSES,
        summary="Upload one or more .txt files as new books",
    )
    async def upload(request: Request) -> JSONResponse:
        """
        Store every file part of a multipart body as a new book.

        Each file part becomes one UploadedFile (filename minus ".txt", body
        decoded as UTF-8). The whole batch goes to the store in one call, so
        either every file is stored or none is. Non-file fields are ignored.
        """
        content_type = request.headers.get("content-type", "")
        if not content_type:
            # What: no body at all; an empty batch still commits
            files: List[UploadedFile] = []
        elif not content_type.lower().startswith("multipart/form-data"):
            raise ValidationError(
                "Upload body must be multipart/form-data",
                field="content-type",
                context={"content_type": content_type},
            )
        else:
            files = await read_uploaded_files(request)

        logger.info("Upload request with %d file(s)", len(files))
        await ctx.store.upload(files)
        return JSONResponse(content=None)

    @router.post(
        "/edit",
        responses=ERROR_RESPONSES,
        summary="Set the name and author of a book",
    )
    async def edit(
        book_id: str = Form(default="", alias="id"),
        name: str = Form(default=""),
        author: str = Form(default=""),
    ) -> JSONResponse:
        """Unknown ids succeed without changing anything."""
        await ctx.store.edit(parse_book_id(book_id, signed=True), name, author)
        return JSONResponse(content=None)

    @router.get("/panic", summary="Always fails")
    async def panic() -> None:
        raise RuntimeError("this is a test panic")

    return router


def build_book_router(ctx: AppContext) -> APIRouter:
    """Build the /book router bound to ``ctx``."""
    router = APIRouter(tags=["Catalog"])

    @router.get(
        "/book/{book_id}",
        response_class=PlainTextResponse,
        responses={
            **ERROR_RESPONSES,
            404: {"description": "No such book", "model": ErrorResponse},
        },
        summary="Full text of a book",
    )
    async def book(book_id: str) -> PlainTextResponse:
        body = await ctx.store.body(parse_book_id(book_id))
        return PlainTextResponse(body)

    return router
