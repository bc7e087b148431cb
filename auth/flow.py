"""
auth/flow.py -- Username/password login orchestration.

AuthFlow.login() checks the presented credentials against the UserStore and,
on success, asks the TokenIssuer for a token carrying the identity's current
roles.

Timing equalization: bcrypt runs exactly once on every attempt. An unknown
identifier is checked against DUMMY_HASH so "no such user" costs the same as
"wrong password", and both return the same INVALID_CREDENTIALS outcome.

No lockout or failed-attempt audit trail is kept here; brute-force throttling
is the slowapi limit on the login route.

Layer rule: no imports from api/, core/, or catalog/.
"""

from __future__ import annotations

import logging

from auth.models import AuthError, LoginResult
from auth.passwords import DUMMY_HASH, verify_password
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("bookstore.auth")


class AuthFlow:
    def __init__(self, store: UserStore, issuer: TokenIssuer) -> None:
        self._store = store
        self._issuer = issuer

    def login(self, username: str, password: str) -> LoginResult:
        """Authenticate ``username`` (or email) with ``password``.

        Returns LoginResult(token=...) on success and
        LoginResult(error=AuthError.INVALID_CREDENTIALS) on any mismatch.
        """
        identity = self._store.find_by_username_or_email(username)
        if identity is None:
            # Equalize timing -- do NOT return before running bcrypt
            verify_password(password, DUMMY_HASH)
            logger.info("Login rejected")
            return LoginResult(error=AuthError.INVALID_CREDENTIALS)
        if not self._store.verify_password(identity, password):
            logger.info("Login rejected")
            return LoginResult(error=AuthError.INVALID_CREDENTIALS)

        roles = self._store.get_roles(identity)
        token = self._issuer.issue(identity, roles)
        logger.info("Login succeeded for user %s (roles=%s)", identity.id, ",".join(sorted(roles)) or "-")
        return LoginResult(token=token)
