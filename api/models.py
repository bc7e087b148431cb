"""
API request and response models for the bookstore REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in catalog/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import TokenClaims
from catalog.models import Author, Book

# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Users / login
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/users. username may also be an email."""

    # No str_strip_whitespace here: whitespace in a password is significant.
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class MeResponse(BaseModel):
    """The verified claims of the caller's bearer token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    roles: list[str]
    token_id: str
    expires_at: str

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "MeResponse":
        return cls(
            user_id=claims.user_id,
            email=claims.subject,
            roles=sorted(claims.roles),
            token_id=claims.token_id,
            expires_at=claims.expires_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------


class AuthorCreate(BaseModel):
    """Request body for POST /api/authors."""

    model_config = ConfigDict(str_strip_whitespace=True)

    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=250)


class AuthorUpdate(AuthorCreate):
    """Request body for PUT /api/authors/{id}. id must match the path."""

    id: int


class BookSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    year: Optional[int] = None
    isbn: Optional[str] = None


class AuthorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    firstname: str
    lastname: str
    bio: Optional[str] = None
    books: list[BookSummary] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, author: Author, books: Optional[list[Book]] = None) -> "AuthorResponse":
        return cls(
            id=author.id,
            firstname=author.firstname,
            lastname=author.lastname,
            bio=author.bio,
            books=[BookSummary(id=b.id, title=b.title, year=b.year, isbn=b.isbn) for b in books or []],
        )


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class BookCreate(BaseModel):
    """Request body for POST /api/books."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    year: Optional[int] = Field(default=None, ge=0, le=9999)
    isbn: Optional[str] = Field(default=None, min_length=10, max_length=20)
    summary: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = Field(default=None, max_length=500)
    price: Optional[float] = Field(default=None, ge=0)
    author_id: Optional[int] = Field(default=None, ge=1)


class BookUpdate(BookCreate):
    """Request body for PUT /api/books/{id}. id must match the path."""

    id: int


class BookResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    year: Optional[int] = None
    isbn: Optional[str] = None
    summary: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = None
    author_id: Optional[int] = None

    @classmethod
    def from_domain(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            year=book.year,
            isbn=book.isbn,
            summary=book.summary,
            image=book.image,
            price=book.price,
            author_id=book.author_id,
        )
