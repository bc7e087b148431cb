"""
tests/test_catalog_store.py -- Unit tests for catalog/store.py.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from catalog.models import Author, Book
from catalog.store import CatalogStore


@pytest.fixture
def le_guin(catalog: CatalogStore) -> int:
    return catalog.create_author(Author(firstname="Ursula", lastname="Le Guin", bio="Earthsea"))


class TestAuthors:
    def test_create_and_get(self, catalog: CatalogStore, le_guin: int) -> None:
        author = catalog.get_author(le_guin)
        assert author.firstname == "Ursula"
        assert author.bio == "Earthsea"
        assert author.id == le_guin

    def test_get_missing(self, catalog: CatalogStore) -> None:
        assert catalog.get_author(999) is None
        assert not catalog.author_exists(999)

    def test_list_ordered_by_lastname(self, catalog: CatalogStore, le_guin: int) -> None:
        catalog.create_author(Author(firstname="Iain", lastname="Banks"))
        assert [a.lastname for a in catalog.list_authors()] == ["Banks", "Le Guin"]

    def test_update(self, catalog: CatalogStore, le_guin: int) -> None:
        assert catalog.update_author(le_guin, bio=None, firstname="U. K.")
        author = catalog.get_author(le_guin)
        assert author.firstname == "U. K."
        assert author.bio is None

    def test_update_unknown_field(self, catalog: CatalogStore, le_guin: int) -> None:
        with pytest.raises(ValueError):
            catalog.update_author(le_guin, id=5)

    def test_update_missing(self, catalog: CatalogStore) -> None:
        assert catalog.update_author(999, firstname="x") is False

    def test_delete_detaches_books(self, catalog: CatalogStore, le_guin: int) -> None:
        book_id = catalog.create_book(Book(title="The Dispossessed", author_id=le_guin))
        assert catalog.delete_author(le_guin)
        assert catalog.get_author(le_guin) is None
        assert catalog.get_book(book_id).author_id is None

    def test_delete_missing(self, catalog: CatalogStore) -> None:
        assert catalog.delete_author(999) is False


class TestBooks:
    def test_create_and_get(self, catalog: CatalogStore, le_guin: int) -> None:
        book_id = catalog.create_book(
            Book(title="The Lathe of Heaven", year=1971, isbn="9780060512750", price=9.99, author_id=le_guin)
        )
        book = catalog.get_book(book_id)
        assert book.title == "The Lathe of Heaven"
        assert book.year == 1971
        assert book.price == pytest.approx(9.99)
        assert catalog.book_exists(book_id)

    def test_duplicate_isbn_rejected(self, catalog: CatalogStore) -> None:
        catalog.create_book(Book(title="A", isbn="1234567890"))
        with pytest.raises(IntegrityError):
            catalog.create_book(Book(title="B", isbn="1234567890"))

    def test_books_without_isbn_do_not_collide(self, catalog: CatalogStore) -> None:
        catalog.create_book(Book(title="A"))
        catalog.create_book(Book(title="B"))
        assert len(catalog.list_books()) == 2

    def test_list_ordered_by_title(self, catalog: CatalogStore) -> None:
        catalog.create_book(Book(title="Zeta"))
        catalog.create_book(Book(title="Alpha"))
        assert [b.title for b in catalog.list_books()] == ["Alpha", "Zeta"]

    def test_list_by_author(self, catalog: CatalogStore, le_guin: int) -> None:
        catalog.create_book(Book(title="Mine", author_id=le_guin))
        catalog.create_book(Book(title="Orphan"))
        assert [b.title for b in catalog.list_books_by_author(le_guin)] == ["Mine"]

    def test_update(self, catalog: CatalogStore) -> None:
        book_id = catalog.create_book(Book(title="Draft"))
        assert catalog.update_book(book_id, title="Final", price=12.5)
        assert catalog.get_book(book_id).title == "Final"

    def test_update_unknown_field(self, catalog: CatalogStore) -> None:
        book_id = catalog.create_book(Book(title="Draft"))
        with pytest.raises(ValueError):
            catalog.update_book(book_id, rating=5)

    def test_delete(self, catalog: CatalogStore) -> None:
        book_id = catalog.create_book(Book(title="Gone"))
        assert catalog.delete_book(book_id)
        assert catalog.get_book(book_id) is None
        assert catalog.delete_book(book_id) is False
