"""
auth/store.py -- SQLAlchemy Core persistence layer for identities and roles.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_identity / _row_to_role are the mappers.
Route and flow code never touches SQL directly.

Lookups return None for "not found" rather than raising. Inserts that violate
a UNIQUE constraint raise sqlalchemy.exc.IntegrityError; seeding checks for
existence first, so that only surfaces on a genuine race.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, core/, or catalog/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, or_, select, text
from sqlalchemy.engine import Engine

from auth.models import Identity, IdentifierTaken, Role
from auth.passwords import hash_password
from auth.passwords import verify_password as _check_password

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # uuid4, immutable
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_roles = Table(
    "roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(64), nullable=False, unique=True),
)

_user_roles = Table(
    "user_roles",
    _metadata,
    Column("user_id", String(36), ForeignKey("users.id"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id"), primary_key=True),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_cross_collision(conn, username: str | None, email: str | None, exclude_id: str | None = None) -> None:
    """Raise IdentifierTaken if username is in use as an email or email as a username."""
    clauses = []
    if username is not None:
        clauses.append(_users.c.email == username)
    if email is not None:
        clauses.append(_users.c.username == email)
    if not clauses:
        return
    stmt = select(_users.c.id).where(or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(_users.c.id != exclude_id)
    if conn.execute(stmt).first() is not None:
        raise IdentifierTaken("Username or email is already in use as a login identifier.")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Identity and Role entities.

    Usage:
        store = UserStore("sqlite:///bookstore.db")
        store.create_role("Administrator")
        admin = store.create_identity("admin", "admin@bookstore.com", "secret")
        store.add_role_to_identity(admin, "Administrator")
        store.get_roles(admin)   # {"Administrator"}
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def create_identity(self, username: str, email: str, password: str) -> Identity:
        """Hash the password, insert the identity and return it with its new id.

        Raises sqlalchemy.exc.IntegrityError if the username or email is taken,
        and IdentifierTaken if the username is another identity's email (or the
        email another identity's username).
        """
        identity = Identity(
            id=str(uuid.uuid4()),
            username=username,
            email=email,
            hashed_password=hash_password(password),
            created_at=_now_iso(),
        )
        with self.engine.connect() as conn:
            _check_cross_collision(conn, username, email)
            conn.execute(
                _users.insert().values(
                    id=identity.id,
                    username=identity.username,
                    email=identity.email,
                    hashed_password=identity.hashed_password,
                    created_at=identity.created_at,
                )
            )
            conn.commit()
        return identity

    def find_by_username_or_email(self, identifier: str) -> Identity | None:
        """Look up an identity whose username or email equals ``identifier``.

        Exact, case-sensitive match. A username match wins over an email match.
        Returns None if not found.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == identifier)).first()
            if row is None:
                row = conn.execute(_users.select().where(_users.c.email == identifier)).first()
        return _row_to_identity(row) if row is not None else None

    def get_by_id(self, user_id: str) -> Identity | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_identity(row) if row is not None else None

    def verify_password(self, identity: Identity, plaintext: str) -> bool:
        """Return True if ``plaintext`` matches the identity's stored hash."""
        return _check_password(plaintext, identity.hashed_password)

    def update_profile(
        self,
        user_id: str,
        username: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> bool:
        """Change any of the mutable profile fields. The id never changes.

        Returns True if a row was updated, False if user_id was not found or no
        field was given. Raises IntegrityError on a username/email collision and
        IdentifierTaken when the new value collides across the two columns.
        """
        fields: dict = {}
        if username is not None:
            fields["username"] = username
        if email is not None:
            fields["email"] = email
        if password is not None:
            fields["hashed_password"] = hash_password(password)
        if not fields:
            return False
        with self.engine.connect() as conn:
            _check_cross_collision(conn, username, email, exclude_id=user_id)
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_identity(self, user_id: str) -> bool:
        """Administratively delete an identity and its role memberships.

        Tokens already issued to the identity stay valid until they expire.
        """
        with self.engine.connect() as conn:
            conn.execute(_user_roles.delete().where(_user_roles.c.user_id == user_id))
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def role_exists(self, name: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_roles.c.id).where(_roles.c.name == name)).first()
        return row is not None

    def create_role(self, name: str) -> Role:
        """Insert a role. Raises IntegrityError if the name already exists."""
        with self.engine.connect() as conn:
            result = conn.execute(_roles.insert().values(name=name))
            conn.commit()
        return Role(id=result.inserted_primary_key[0], name=name)

    def list_roles(self) -> list[Role]:
        with self.engine.connect() as conn:
            rows = conn.execute(_roles.select().order_by(_roles.c.name)).fetchall()
        return [_row_to_role(r) for r in rows]

    def add_role_to_identity(self, identity: Identity, role_name: str) -> bool:
        """Grant ``role_name`` to ``identity``.

        Returns False if the role does not exist. Granting a role the identity
        already holds is a no-op that returns True.
        """
        with self.engine.connect() as conn:
            role_id = conn.execute(select(_roles.c.id).where(_roles.c.name == role_name)).scalar()
            if role_id is None:
                return False
            held = conn.execute(
                select(_user_roles.c.role_id).where(
                    (_user_roles.c.user_id == identity.id) & (_user_roles.c.role_id == role_id)
                )
            ).first()
            if held is None:
                conn.execute(_user_roles.insert().values(user_id=identity.id, role_id=role_id))
                conn.commit()
        return True

    def get_roles(self, identity: Identity) -> set[str]:
        """Return the names of every role the identity currently holds."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_roles.c.name)
                .select_from(_user_roles.join(_roles, _user_roles.c.role_id == _roles.c.id))
                .where(_user_roles.c.user_id == identity.id)
            ).fetchall()
        return {row.name for row in rows}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_identity(row) -> Identity:
    return Identity(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )


def _row_to_role(row) -> Role:
    return Role(id=row.id, name=row.name)
