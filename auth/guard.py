"""
auth/guard.py -- Per-request authorization decision point.

AccessGuard.check() evaluates one request against one AccessPolicy:

  1. PUBLIC                 -> allow, token not even looked at
  2. no bearer token        -> MISSING_TOKEN           (401)
  3. bad signature / expiry /
     issuer / audience      -> EXPIRED_TOKEN or MALFORMED_TOKEN (401)
  4. ROLES and no overlap
     with the token's roles -> INSUFFICIENT_ROLE       (403)
  5. otherwise              -> allow, with claims

The guard keeps no state between calls. Roles come from the token, not the
store, so a role revoked in the database takes effect only once the holder's
token expires.
"""

from __future__ import annotations

import logging

from auth.models import AccessPolicy, AuthError, GuardDecision, PolicyKind
from auth.tokens import TokenConfig, decode_token

logger = logging.getLogger("bookstore.auth")

_BEARER_PREFIX = "bearer "


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value.

    The scheme is matched case-insensitively. Any other scheme, or an empty
    token, yields None.
    """
    if not authorization:
        return None
    if authorization[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


class AccessGuard:
    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    def check(self, token: str | None, policy: AccessPolicy) -> GuardDecision:
        if policy.kind is PolicyKind.PUBLIC:
            return GuardDecision(allowed=True)

        if not token:
            return GuardDecision(allowed=False, error=AuthError.MISSING_TOKEN)

        verification = decode_token(self._config, token)
        if not verification.ok:
            logger.info("Rejected bearer token (%s)", verification.error.value)
            return GuardDecision(allowed=False, error=verification.error)

        claims = verification.claims
        if policy.kind is PolicyKind.ROLES and not (claims.roles & policy.roles):
            logger.info(
                "User %s lacks any of roles %s",
                claims.user_id,
                ",".join(sorted(policy.roles)),
            )
            return GuardDecision(allowed=False, claims=claims, error=AuthError.INSUFFICIENT_ROLE)

        return GuardDecision(allowed=True, claims=claims)
