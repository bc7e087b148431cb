"""
auth/models.py -- Domain dataclasses and outcome types for authentication.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores, the token issuer
and the access guard do the work.

Outcome types (LoginResult, TokenVerification, GuardDecision) carry either a
value or an AuthError. The auth path never raises for "wrong password" or
"bad token"; only the HTTP boundary in auth/dependencies.py turns an AuthError
into an HTTPException.

Layer rule: no imports from api/, core/, or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

ADMINISTRATOR = "Administrator"
CUSTOMER = "Customer"


@dataclass
class Identity:
    """A registered user account.

    id is a uuid4 string assigned by the store on insert and never changes.
    username and email are both unique; either one can be used to log in.
    hashed_password is a bcrypt hash -- the plaintext is never stored.
    """

    username: str
    email: str
    hashed_password: str
    id: str | None = None
    created_at: str | None = None


@dataclass
class Role:
    """A named permission group ("Administrator", "Customer")."""

    name: str
    id: int | None = None


@dataclass(frozen=True)
class TokenClaims:
    """The verified contents of a bearer token.

    roles is a frozenset so two claim sets compare equal regardless of the
    order the role claims appeared in the token.
    """

    subject: str  # email
    token_id: str  # jti
    user_id: str  # nameid
    roles: frozenset[str]
    issued_at: datetime
    expires_at: datetime


class AuthError(str, Enum):
    """Why an authentication or authorization decision was negative.

    The value doubles as the machine-readable error code in HTTP responses,
    except that the three token failures share one public code so clients
    cannot tell a forged token from an expired one.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    MISSING_TOKEN = "missing_token"
    EXPIRED_TOKEN = "expired_token"
    MALFORMED_TOKEN = "malformed_token"
    INSUFFICIENT_ROLE = "insufficient_role"

    @property
    def status_code(self) -> int:
        return 403 if self is AuthError.INSUFFICIENT_ROLE else 401


class MisconfiguredSigningKey(ValueError):
    """Raised at startup when the signing key is absent or too short."""


class IdentifierTaken(ValueError):
    """Raised when a username equals another identity's email, or vice versa.

    Either value can be used to log in, so the two columns share one namespace.
    """


class PolicyKind(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ROLES = "roles"


@dataclass(frozen=True)
class AccessPolicy:
    """Per-operation access requirement, fixed when the route is registered.

    Build with the PUBLIC / AUTHENTICATED constants or requires_roles().
    """

    kind: PolicyKind
    roles: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.kind is PolicyKind.ROLES and not self.roles:
            raise ValueError("A role policy needs at least one role.")
        if self.kind is not PolicyKind.ROLES and self.roles:
            raise ValueError(f"A {self.kind.value} policy cannot name roles.")


PUBLIC = AccessPolicy(PolicyKind.PUBLIC)
AUTHENTICATED = AccessPolicy(PolicyKind.AUTHENTICATED)


def requires_roles(*roles: str) -> AccessPolicy:
    """Policy satisfied by a valid token holding any one of ``roles``."""
    return AccessPolicy(PolicyKind.ROLES, frozenset(roles))


@dataclass(frozen=True)
class LoginResult:
    token: str | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TokenVerification:
    claims: TokenClaims | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of AccessGuard.check().

    claims is None for anonymous access to a PUBLIC operation, and for every
    rejection except INSUFFICIENT_ROLE (the token was valid, so its claims are
    kept for logging).
    """

    allowed: bool
    claims: TokenClaims | None = None
    error: AuthError | None = None
