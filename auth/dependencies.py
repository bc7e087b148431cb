"""
auth/dependencies.py -- FastAPI Depends() helpers for authorization.

require(policy) builds a dependency bound to one AccessPolicy at route
registration time. On every request it pulls the bearer token from the
Authorization header, asks app.state.access_guard for a decision, and turns a
negative GuardDecision into an HTTPException:

  MISSING_TOKEN / EXPIRED_TOKEN / MALFORMED_TOKEN -> 401, one shared body,
      WWW-Authenticate: Bearer
  INSUFFICIENT_ROLE                               -> 403

The three 401 causes deliberately share a code and message so a client cannot
distinguish a forged token from an expired one.

Usage:
    @router.put("/authors/{id}", dependencies=[Depends(require(requires_roles("Administrator")))])

    @router.get("/users/me")
    async def me(claims: TokenClaims = Depends(require(AUTHENTICATED))): ...

Layer rule: auth/dependencies.py may import from fastapi because this module is
part of the FastAPI dependency injection system. No imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.guard import AccessGuard, extract_bearer
from auth.models import AccessPolicy, AuthError, TokenClaims


def require(policy: AccessPolicy) -> Callable[[Request], TokenClaims | None]:
    """Return a dependency enforcing ``policy``; it resolves to the token's claims.

    For a PUBLIC policy the dependency always resolves to None.
    """

    def _dependency(request: Request) -> TokenClaims | None:
        guard: AccessGuard = request.app.state.access_guard
        token = extract_bearer(request.headers.get("Authorization"))
        decision = guard.check(token, policy)
        if decision.allowed:
            return decision.claims
        raise _to_http_error(decision.error)

    return _dependency


def _to_http_error(error: AuthError) -> HTTPException:
    if error is AuthError.INSUFFICIENT_ROLE:
        return HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "You do not have permission to perform this action."},
        )
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": "Authentication required."},
        headers={"WWW-Authenticate": "Bearer"},
    )
