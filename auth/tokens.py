"""
auth/tokens.py -- Bearer token issue and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the configured key and
       carry sub (email), jti (fresh uuid4), nameid (stable user id), one
       entry per role under "role", plus iss/aud/iat/exp. Expiry is iat + a
       fixed lifetime (5 hours unless configured otherwise).

  Stateless: nothing about an issued token is kept server-side. A token
       cannot be revoked; it stops working when exp passes. Expiry is checked
       lazily on every decode.

  Configuration: TokenConfig is an explicit, frozen value built once at
       startup and injected into TokenIssuer and AccessGuard. A missing or
       short signing key raises MisconfiguredSigningKey from the TokenConfig
       constructor -- i.e. at startup, never per request.

  Verification returns a TokenVerification instead of raising. Expired,
       forged and unparseable tokens come back as distinct AuthError values
       for logging; the HTTP layer reports all three as the same 401.

Layer rule: no imports from api/ or catalog/. core/ is not imported either --
api.main builds TokenConfig from Settings and passes it in.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import AuthError, Identity, MisconfiguredSigningKey, TokenClaims, TokenVerification

logger = logging.getLogger("bookstore.auth")

ALGORITHM = "HS256"
MIN_KEY_LENGTH = 32
DEFAULT_LIFETIME = timedelta(hours=5)

# Claim names
CLAIM_SUBJECT = "sub"
CLAIM_TOKEN_ID = "jti"
CLAIM_USER_ID = "nameid"
CLAIM_ROLE = "role"


@dataclass(frozen=True)
class TokenConfig:
    """Everything the issuer and the guard need to sign and check tokens.

    audience defaults to the issuer when left empty. validate_issuer and
    validate_audience turn the corresponding checks off at verification time;
    both claims are always written at issue time.
    """

    signing_key: str
    issuer: str
    audience: str = ""
    lifetime: timedelta = DEFAULT_LIFETIME
    validate_issuer: bool = True
    validate_audience: bool = True

    def __post_init__(self) -> None:
        if not self.signing_key:
            raise MisconfiguredSigningKey("Signing key is not configured.")
        if len(self.signing_key) < MIN_KEY_LENGTH:
            raise MisconfiguredSigningKey(f"Signing key must be at least {MIN_KEY_LENGTH} characters.")
        if not self.issuer:
            raise MisconfiguredSigningKey("Token issuer is not configured.")
        if self.lifetime <= timedelta(0):
            raise MisconfiguredSigningKey("Token lifetime must be positive.")
        if not self.audience:
            # frozen dataclass -- bypass __setattr__ for the derived default
            object.__setattr__(self, "audience", self.issuer)

    @classmethod
    def from_settings(cls, settings) -> TokenConfig:
        """Build from a core.config.Settings (duck-typed to keep auth/ core-free)."""
        return cls(
            signing_key=settings.jwt_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            lifetime=timedelta(seconds=settings.token_expire_seconds),
            validate_issuer=settings.validate_issuer,
            validate_audience=settings.validate_audience,
        )


class TokenIssuer:
    """Mints signed, expiring bearer tokens for authenticated identities."""

    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    @property
    def config(self) -> TokenConfig:
        return self._config

    @property
    def lifetime(self) -> timedelta:
        return self._config.lifetime

    def issue(self, identity: Identity, roles: Iterable[str], issued_at: datetime | None = None) -> str:
        """Return the compact serialized token for ``identity`` holding ``roles``.

        issued_at defaults to now (UTC). Roles are de-duplicated and sorted so
        the payload is deterministic apart from jti and the timestamps.
        """
        iat = issued_at or datetime.now(timezone.utc)
        payload = {
            CLAIM_SUBJECT: identity.email,
            CLAIM_TOKEN_ID: str(uuid.uuid4()),
            CLAIM_USER_ID: identity.id,
            CLAIM_ROLE: sorted(set(roles)),
            "iss": self._config.issuer,
            "aud": self._config.audience,
            "iat": iat,
            "exp": iat + self._config.lifetime,
        }
        return jwt.encode(payload, self._config.signing_key, algorithm=ALGORITHM)


def decode_token(config: TokenConfig, token: str) -> TokenVerification:
    """Verify signature, expiry, issuer and audience; return the claims.

    Never raises. Every failure maps to EXPIRED_TOKEN or MALFORMED_TOKEN.
    """
    options = {
        "verify_aud": config.validate_audience,
        "verify_iss": config.validate_issuer,
        "require_exp": True,
        "require_iat": True,
        "require_sub": True,
        "require_jti": True,
    }
    try:
        payload = jwt.decode(
            token,
            config.signing_key,
            algorithms=[ALGORITHM],
            audience=config.audience if config.validate_audience else None,
            issuer=config.issuer if config.validate_issuer else None,
            options=options,
        )
    except ExpiredSignatureError:
        return TokenVerification(error=AuthError.EXPIRED_TOKEN)
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        return TokenVerification(error=AuthError.MALFORMED_TOKEN)

    claims = _payload_to_claims(payload)
    if claims is None:
        return TokenVerification(error=AuthError.MALFORMED_TOKEN)
    return TokenVerification(claims=claims)


def _payload_to_claims(payload: dict) -> TokenClaims | None:
    user_id = payload.get(CLAIM_USER_ID)
    if not isinstance(user_id, str) or not user_id:
        return None

    raw_roles = payload.get(CLAIM_ROLE, [])
    # A single role may arrive as a bare string from other JWT producers.
    if isinstance(raw_roles, str):
        raw_roles = [raw_roles]
    if not isinstance(raw_roles, list) or not all(isinstance(r, str) for r in raw_roles):
        return None

    try:
        issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None
    if expires_at <= issued_at:
        return None

    return TokenClaims(
        subject=payload[CLAIM_SUBJECT],
        token_id=payload[CLAIM_TOKEN_ID],
        user_id=user_id,
        roles=frozenset(raw_roles),
        issued_at=issued_at,
        expires_at=expires_at,
    )
