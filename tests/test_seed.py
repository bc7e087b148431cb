"""
tests/test_seed.py -- Unit tests for auth/seed.py.
"""

from __future__ import annotations

import pytest

from auth.models import ADMINISTRATOR, CUSTOMER
from auth.seed import seed_roles, seed_users
from auth.store import UserStore


@pytest.fixture
def empty_store():
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


def test_seed_roles_creates_both(empty_store: UserStore) -> None:
    assert seed_roles(empty_store) == [ADMINISTRATOR, CUSTOMER]
    assert empty_store.role_exists(ADMINISTRATOR)
    assert empty_store.role_exists(CUSTOMER)


def test_seed_roles_is_idempotent(empty_store: UserStore) -> None:
    seed_roles(empty_store)
    assert seed_roles(empty_store) == []
    assert len(empty_store.list_roles()) == 2


def test_seed_users_grants_expected_roles(user_store: UserStore) -> None:
    assert seed_users(user_store, "P@ssword1") == ["admin", "Customer1", "Customer2"]
    admin = user_store.find_by_username_or_email("admin@bookstore.com")
    customer = user_store.find_by_username_or_email("Customer1")
    assert user_store.get_roles(admin) == {ADMINISTRATOR}
    assert user_store.get_roles(customer) == {CUSTOMER}
    assert user_store.verify_password(admin, "P@ssword1")


def test_seed_users_is_idempotent(user_store: UserStore) -> None:
    seed_users(user_store, "P@ssword1")
    assert seed_users(user_store, "P@ssword1") == []


def test_seed_users_leaves_existing_accounts_alone(user_store: UserStore) -> None:
    existing = user_store.create_identity("admin", "admin@bookstore.com", "already-set")
    created = seed_users(user_store, "P@ssword1")
    assert created == ["Customer1", "Customer2"]
    assert user_store.verify_password(user_store.get_by_id(existing.id), "already-set")
    assert user_store.get_roles(existing) == set()
