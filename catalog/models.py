"""
catalog/models.py -- Domain dataclasses for the bookstore catalog.

These are pure data containers with zero logic. Persistence lives in
catalog/store.py; the HTTP contract lives in api/models.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Author:
    """A book author. id is None before the record is written to the database."""

    firstname: str
    lastname: str
    bio: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Book:
    """A catalog entry.

    author_id is nullable: deleting an author detaches its books instead of
    deleting them. isbn is unique when present.
    """

    title: str
    year: Optional[int] = None
    isbn: Optional[str] = None
    summary: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = None
    author_id: Optional[int] = None
    id: Optional[int] = None
