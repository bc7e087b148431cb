"""
api/routes/users.py -- Login and caller identity endpoints.

Routes:
  POST /api/users     -- username/password login; returns {"token": ...}
  GET  /api/users/me  -- claims of the presented bearer token (requires auth)

Security:
  POST /users is rate-limited to 10 requests/minute per IP.
  AuthFlow.login() provides timing equalization -- use it, never inline the
  lookup + bcrypt check.
  Cache-Control: no-store on both login responses.
  The 401 body is the submitted body, whatever the cause, so "unknown user"
  and "wrong password" cannot be told apart by shape.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse
from auth.dependencies import require
from auth.flow import AuthFlow
from auth.models import AUTHENTICATED, TokenClaims

logger = logging.getLogger("bookstore.api")

# Auth policy:
# - POST /api/users:     public -- login endpoint must be unauthenticated
# - GET  /api/users/me:  AUTHENTICATED
router = APIRouter()


@router.post("/users", response_model=LoginResponse, responses={401: {"model": LoginRequest}})
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange a username (or email) and password for a bearer token."""
    auth_flow: AuthFlow = request.app.state.auth_flow
    result = auth_flow.login(body.username, body.password)
    if not result.ok:
        resp = JSONResponse(status_code=401, content=body.model_dump())
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(status_code=200, content=LoginResponse(token=result.token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/users/me", response_model=MeResponse)
async def me(claims: TokenClaims = Depends(require(AUTHENTICATED))) -> MeResponse:
    """Return the identity and roles carried by the caller's token."""
    return MeResponse.from_claims(claims)
