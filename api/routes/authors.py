"""
api/routes/authors.py -- Author CRUD routes.

Routes and access policies:
  GET    /authors        -- PUBLIC
  GET    /authors/{id}   -- PUBLIC (includes the author's books)
  POST   /authors        -- AUTHENTICATED
  PUT    /authors/{id}   -- Administrator or Customer
  DELETE /authors/{id}   -- Customer

Handlers are thin: validate ids, call CatalogStore, map to response models.
Anything unexpected propagates to the generic 500 handler in api/main.py.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import AuthorCreate, AuthorResponse, AuthorUpdate, ErrorDetail
from auth.dependencies import require
from auth.models import ADMINISTRATOR, AUTHENTICATED, CUSTOMER, PUBLIC, requires_roles
from catalog.models import Author
from catalog.store import CatalogStore

logger = logging.getLogger("bookstore.catalog")

router = APIRouter()


def _not_found(author_id: int) -> HTTPException:
    logger.warning("No author with id %d was found", author_id)
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="author_not_found", message=f"Author {author_id} not found.").model_dump(),
    )


def _bad_id(message: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=ErrorDetail(code="invalid_id", message=message).model_dump(),
    )


@router.get("/authors", response_model=list[AuthorResponse], dependencies=[Depends(require(PUBLIC))])
def list_authors(request: Request) -> list[AuthorResponse]:
    """Return all authors (without their books)."""
    catalog: CatalogStore = request.app.state.catalog
    authors = catalog.list_authors()
    logger.info("Listed %d authors", len(authors))
    return [AuthorResponse.from_domain(a) for a in authors]


@router.get("/authors/{author_id}", response_model=AuthorResponse, dependencies=[Depends(require(PUBLIC))])
def get_author(request: Request, author_id: int) -> AuthorResponse:
    """Return one author together with the books attributed to them."""
    catalog: CatalogStore = request.app.state.catalog
    author = catalog.get_author(author_id)
    if author is None:
        raise _not_found(author_id)
    return AuthorResponse.from_domain(author, catalog.list_books_by_author(author_id))


@router.post(
    "/authors",
    response_model=AuthorResponse,
    status_code=201,
    dependencies=[Depends(require(AUTHENTICATED))],
)
def create_author(request: Request, body: AuthorCreate) -> AuthorResponse:
    catalog: CatalogStore = request.app.state.catalog
    author_id = catalog.create_author(Author(firstname=body.firstname, lastname=body.lastname, bio=body.bio))
    logger.info("Created author %d", author_id)
    return AuthorResponse.from_domain(catalog.get_author(author_id))


@router.put(
    "/authors/{author_id}",
    status_code=204,
    dependencies=[Depends(require(requires_roles(ADMINISTRATOR, CUSTOMER)))],
)
def update_author(request: Request, author_id: int, body: AuthorUpdate) -> Response:
    """Replace an author's fields. The body id must equal the path id."""
    if author_id < 1 or body.id != author_id:
        logger.warning("Update author with bad data id: %d", author_id)
        raise _bad_id("Path id and body id must match and be positive.")
    catalog: CatalogStore = request.app.state.catalog
    updated = catalog.update_author(author_id, firstname=body.firstname, lastname=body.lastname, bio=body.bio)
    if not updated:
        raise _not_found(author_id)
    logger.info("Updated author %d", author_id)
    return Response(status_code=204)


@router.delete(
    "/authors/{author_id}",
    status_code=204,
    dependencies=[Depends(require(requires_roles(CUSTOMER)))],
)
def delete_author(request: Request, author_id: int) -> Response:
    """Delete an author. Their books stay in the catalog, unattributed."""
    if author_id < 1:
        raise _bad_id("Author id must be positive.")
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.delete_author(author_id):
        raise _not_found(author_id)
    logger.info("Deleted author %d", author_id)
    return Response(status_code=204)
