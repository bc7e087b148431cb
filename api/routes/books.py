"""
api/routes/books.py -- Book CRUD routes.

Routes and access policies:
  GET    /books        -- PUBLIC
  GET    /books/{id}   -- PUBLIC
  POST   /books        -- AUTHENTICATED
  PUT    /books/{id}   -- Administrator
  DELETE /books/{id}   -- Administrator

author_id, when given, must name an existing author (400 otherwise).
isbn is unique across the catalog (409 on collision).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import BookCreate, BookResponse, BookUpdate, ErrorDetail
from auth.dependencies import require
from auth.models import ADMINISTRATOR, AUTHENTICATED, PUBLIC, requires_roles
from catalog.models import Book
from catalog.store import CatalogStore

logger = logging.getLogger("bookstore.catalog")

router = APIRouter()

_ADMIN_ONLY = requires_roles(ADMINISTRATOR)


def _not_found(book_id: int) -> HTTPException:
    logger.warning("Failed to retrieve book %d", book_id)
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="book_not_found", message=f"Book {book_id} not found.").model_dump(),
    )


def _check_author(catalog: CatalogStore, author_id) -> None:
    if author_id is not None and not catalog.author_exists(author_id):
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="unknown_author", message=f"Author {author_id} does not exist.").model_dump(),
        )


def _isbn_conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=ErrorDetail(code="conflict", message="A book with that ISBN already exists.").model_dump(),
    )


@router.get("/books", response_model=list[BookResponse], dependencies=[Depends(require(PUBLIC))])
def list_books(request: Request) -> list[BookResponse]:
    catalog: CatalogStore = request.app.state.catalog
    books = catalog.list_books()
    logger.info("Listed %d books", len(books))
    return [BookResponse.from_domain(b) for b in books]


@router.get("/books/{book_id}", response_model=BookResponse, dependencies=[Depends(require(PUBLIC))])
def get_book(request: Request, book_id: int) -> BookResponse:
    catalog: CatalogStore = request.app.state.catalog
    book = catalog.get_book(book_id)
    if book is None:
        raise _not_found(book_id)
    return BookResponse.from_domain(book)


@router.post(
    "/books",
    response_model=BookResponse,
    status_code=201,
    dependencies=[Depends(require(AUTHENTICATED))],
)
def create_book(request: Request, body: BookCreate) -> BookResponse:
    catalog: CatalogStore = request.app.state.catalog
    _check_author(catalog, body.author_id)
    try:
        book_id = catalog.create_book(Book(**body.model_dump()))
    except IntegrityError as exc:
        raise _isbn_conflict() from exc
    logger.info("Created book %d", book_id)
    return BookResponse.from_domain(catalog.get_book(book_id))


@router.put("/books/{book_id}", status_code=204, dependencies=[Depends(require(_ADMIN_ONLY))])
def update_book(request: Request, book_id: int, body: BookUpdate) -> Response:
    """Replace a book's fields. The body id must equal the path id."""
    if book_id < 1 or body.id != book_id:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_id", message="Path id and body id must match and be positive.").model_dump(),
        )
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.book_exists(book_id):
        raise _not_found(book_id)
    _check_author(catalog, body.author_id)
    try:
        catalog.update_book(book_id, **body.model_dump(exclude={"id"}))
    except IntegrityError as exc:
        raise _isbn_conflict() from exc
    logger.info("Updated book %d", book_id)
    return Response(status_code=204)


@router.delete("/books/{book_id}", status_code=204, dependencies=[Depends(require(_ADMIN_ONLY))])
def delete_book(request: Request, book_id: int) -> Response:
    if book_id < 1:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_id", message="Book id must be positive.").model_dump(),
        )
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.delete_book(book_id):
        raise _not_found(book_id)
    logger.info("Deleted book %d", book_id)
    return Response(status_code=204)
