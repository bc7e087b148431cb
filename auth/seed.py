"""
auth/seed.py -- Startup seeding of roles and demo identities.

seed_roles() runs on every startup: the role names used in route policies must
exist before anyone can be granted them. seed_users() creates the three demo
accounts and only runs when a demo password is configured. Both are
idempotent -- existing rows are left alone.

Layer rule: no imports from api/, core/, or catalog/.
"""

from __future__ import annotations

import logging

from auth.models import ADMINISTRATOR, CUSTOMER
from auth.store import UserStore

logger = logging.getLogger("bookstore.auth")

ROLES = (ADMINISTRATOR, CUSTOMER)

# (username, email, role)
DEMO_USERS = (
    ("admin", "admin@bookstore.com", ADMINISTRATOR),
    ("Customer1", "customer1@gmail.com", CUSTOMER),
    ("Customer2", "customer2@gmail.com", CUSTOMER),
)


def seed_roles(store: UserStore) -> list[str]:
    """Create any missing role from ROLES. Returns the names created."""
    created = []
    for name in ROLES:
        if not store.role_exists(name):
            store.create_role(name)
            created.append(name)
    if created:
        logger.info("Seeded roles: %s", ", ".join(created))
    return created


def seed_users(store: UserStore, password: str) -> list[str]:
    """Create any missing demo identity, matched by email. Returns usernames created."""
    created = []
    for username, email, role in DEMO_USERS:
        if store.find_by_username_or_email(email) is not None:
            continue
        identity = store.create_identity(username, email, password)
        store.add_role_to_identity(identity, role)
        created.append(username)
    if created:
        logger.info("Seeded demo users: %s", ", ".join(created))
    return created
