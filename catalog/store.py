"""
catalog/store.py -- SQLAlchemy-backed persistence layer for authors and books.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in catalog/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL or SQL Server is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. CatalogStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CatalogStore("sqlite:///bookstore.db")
    author_id = store.create_author(Author(firstname="Ursula", lastname="Le Guin"))
    store.create_book(Book(title="The Dispossessed", author_id=author_id))
    store.list_books_by_author(author_id)
    store.close()
"""

from typing import Optional

from sqlalchemy import Column, Float, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine

from catalog.models import Author, Book

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_authors = Table(
    "authors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("firstname", String(100), nullable=False),
    Column("lastname", String(100), nullable=False),
    Column("bio", Text),
)

_books = Table(
    "books",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("year", Integer),
    Column("isbn", String(20), unique=True),
    Column("summary", Text),
    Column("image", String(500)),
    Column("price", Float),
    Column("author_id", Integer, ForeignKey("authors.id")),
)

# Columns a caller may change through update_author / update_book.
_AUTHOR_FIELDS = {"firstname", "lastname", "bio"}
_BOOK_FIELDS = {"title", "year", "isbn", "summary", "image", "price", "author_id"}


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (per connection)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a thread pool, so one connection
            # may be used from several threads over its lifetime.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def create_author(self, author: Author) -> int:
        """Insert a new author and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _authors.insert().values(firstname=author.firstname, lastname=author.lastname, bio=author.bio)
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_author(self, author_id: int) -> Optional[Author]:
        """Fetch a single author by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_authors.select().where(_authors.c.id == author_id)).fetchone()
        return _row_to_author(row) if row is not None else None

    def author_exists(self, author_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_authors.c.id).where(_authors.c.id == author_id)).first()
        return row is not None

    def list_authors(self) -> list[Author]:
        """Return all authors ordered by lastname, firstname."""
        with self.engine.connect() as conn:
            rows = conn.execute(_authors.select().order_by(_authors.c.lastname, _authors.c.firstname)).fetchall()
        return [_row_to_author(r) for r in rows]

    def update_author(self, author_id: int, **fields) -> bool:
        """Update mutable fields on an existing author.

        Accepts any subset of: firstname, lastname, bio. Unknown keys raise
        ValueError. Returns True if a row was updated, False if not found.
        """
        unknown = set(fields) - _AUTHOR_FIELDS
        if unknown:
            raise ValueError(f"Unknown author fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(_authors.update().where(_authors.c.id == author_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_author(self, author_id: int) -> bool:
        """Delete an author and detach (not delete) their books.

        Returns True if deleted, False if not found.
        """
        with self.engine.connect() as conn:
            conn.execute(_books.update().where(_books.c.author_id == author_id).values(author_id=None))
            result = conn.execute(_authors.delete().where(_authors.c.id == author_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def create_book(self, book: Book) -> int:
        """Insert a new book and return its ID.

        Raises sqlalchemy.exc.IntegrityError if the isbn already exists.
        Callers must check author_id with author_exists() first.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _books.insert().values(
                    title=book.title,
                    year=book.year,
                    isbn=book.isbn,
                    summary=book.summary,
                    image=book.image,
                    price=book.price,
                    author_id=book.author_id,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_book(self, book_id: int) -> Optional[Book]:
        """Fetch a single book by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_books.select().where(_books.c.id == book_id)).fetchone()
        return _row_to_book(row) if row is not None else None

    def book_exists(self, book_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_books.c.id).where(_books.c.id == book_id)).first()
        return row is not None

    def list_books(self) -> list[Book]:
        """Return all books ordered by title."""
        with self.engine.connect() as conn:
            rows = conn.execute(_books.select().order_by(_books.c.title)).fetchall()
        return [_row_to_book(r) for r in rows]

    def list_books_by_author(self, author_id: int) -> list[Book]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _books.select().where(_books.c.author_id == author_id).order_by(_books.c.title)
            ).fetchall()
        return [_row_to_book(r) for r in rows]

    def update_book(self, book_id: int, **fields) -> bool:
        """Update mutable fields on an existing book.

        Accepts any subset of: title, year, isbn, summary, image, price,
        author_id. Raises IntegrityError on an isbn collision.
        """
        unknown = set(fields) - _BOOK_FIELDS
        if unknown:
            raise ValueError(f"Unknown book fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(_books.update().where(_books.c.id == book_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_book(self, book_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_books.delete().where(_books.c.id == book_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_author(row) -> Author:
    return Author(id=row.id, firstname=row.firstname, lastname=row.lastname, bio=row.bio)


def _row_to_book(row) -> Book:
    return Book(
        id=row.id,
        title=row.title,
        year=row.year,
        isbn=row.isbn,
        summary=row.summary,
        image=row.image,
        price=row.price,
        author_id=row.author_id,
    )
