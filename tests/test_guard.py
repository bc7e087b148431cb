"""
tests/test_guard.py -- Unit tests for auth/guard.py.

Covers every branch of AccessGuard.check(): PUBLIC, missing token, bad token,
expired token, role intersection and role mismatch, plus bearer header parsing
and AccessPolicy construction rules.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.guard import AccessGuard, extract_bearer
from auth.models import (
    ADMINISTRATOR,
    AUTHENTICATED,
    CUSTOMER,
    PUBLIC,
    AccessPolicy,
    AuthError,
    PolicyKind,
    requires_roles,
)
from auth.tokens import TokenIssuer


class TestPublic:
    def test_no_token_allowed(self, guard: AccessGuard) -> None:
        decision = guard.check(None, PUBLIC)
        assert decision.allowed
        assert decision.claims is None

    def test_garbage_token_ignored(self, guard: AccessGuard) -> None:
        assert guard.check("garbage", PUBLIC).allowed


class TestAuthenticated:
    def test_missing_token(self, guard: AccessGuard) -> None:
        decision = guard.check(None, AUTHENTICATED)
        assert not decision.allowed
        assert decision.error is AuthError.MISSING_TOKEN

    def test_malformed_token(self, guard: AccessGuard) -> None:
        assert guard.check("garbage", AUTHENTICATED).error is AuthError.MALFORMED_TOKEN

    def test_valid_token_without_roles(self, guard: AccessGuard, issuer: TokenIssuer, identity) -> None:
        decision = guard.check(issuer.issue(identity, []), AUTHENTICATED)
        assert decision.allowed
        assert decision.claims.user_id == identity.id


class TestRoles:
    def test_intersection_allows(self, guard: AccessGuard, issuer: TokenIssuer, identity) -> None:
        token = issuer.issue(identity, [CUSTOMER])
        decision = guard.check(token, requires_roles(ADMINISTRATOR, CUSTOMER))
        assert decision.allowed
        assert decision.claims.roles == frozenset({CUSTOMER})

    def test_no_intersection_forbidden(self, guard: AccessGuard, issuer: TokenIssuer, identity) -> None:
        token = issuer.issue(identity, [ADMINISTRATOR])
        decision = guard.check(token, requires_roles(CUSTOMER))
        assert not decision.allowed
        assert decision.error is AuthError.INSUFFICIENT_ROLE
        assert decision.claims is not None

    def test_no_roles_forbidden(self, guard: AccessGuard, issuer: TokenIssuer, identity) -> None:
        decision = guard.check(issuer.issue(identity, []), requires_roles(CUSTOMER))
        assert decision.error is AuthError.INSUFFICIENT_ROLE

    def test_expired_token_unauthenticated_regardless_of_roles(
        self, guard: AccessGuard, issuer: TokenIssuer, identity
    ) -> None:
        issued = datetime.now(timezone.utc) - timedelta(hours=5, seconds=1)
        token = issuer.issue(identity, [ADMINISTRATOR, CUSTOMER], issued_at=issued)
        decision = guard.check(token, requires_roles(ADMINISTRATOR))
        assert decision.error is AuthError.EXPIRED_TOKEN
        assert decision.claims is None

    def test_missing_token_is_unauthenticated_not_forbidden(self, guard: AccessGuard) -> None:
        assert guard.check(None, requires_roles(ADMINISTRATOR)).error is AuthError.MISSING_TOKEN


class TestErrorStatus:
    @pytest.mark.parametrize(
        "error",
        [AuthError.INVALID_CREDENTIALS, AuthError.MISSING_TOKEN, AuthError.EXPIRED_TOKEN, AuthError.MALFORMED_TOKEN],
    )
    def test_unauthenticated_errors_are_401(self, error: AuthError) -> None:
        assert error.status_code == 401

    def test_insufficient_role_is_403(self) -> None:
        assert AuthError.INSUFFICIENT_ROLE.status_code == 403


class TestExtractBearer:
    def test_standard_header(self) -> None:
        assert extract_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        assert extract_bearer("bearer abc") == "abc"

    @pytest.mark.parametrize("value", [None, "", "Bearer ", "Basic dXNlcjpwYXNz", "abc.def.ghi"])
    def test_no_token(self, value) -> None:
        assert extract_bearer(value) is None


class TestAccessPolicy:
    def test_requires_roles_builds_role_policy(self) -> None:
        policy = requires_roles(ADMINISTRATOR, CUSTOMER)
        assert policy.kind is PolicyKind.ROLES
        assert policy.roles == frozenset({ADMINISTRATOR, CUSTOMER})

    def test_role_policy_needs_roles(self) -> None:
        with pytest.raises(ValueError):
            requires_roles()

    def test_public_policy_cannot_name_roles(self) -> None:
        with pytest.raises(ValueError):
            AccessPolicy(PolicyKind.PUBLIC, frozenset({ADMINISTRATOR}))
