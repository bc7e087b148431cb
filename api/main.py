"""
api/main.py -- FastAPI application factory for the bookstore API.

Run with:  uvicorn asgi:app --reload

create_app() is the only place Settings are read. It derives a TokenConfig
from them and builds the TokenIssuer and AccessGuard up front, so a missing or
short JWT_KEY (or a missing JWT_ISSUER) fails here -- before uvicorn binds a
socket -- instead of surfacing as unverifiable tokens on the first request.

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. log_requests          -- method, path, status, latency, client

Lifespan opens the stores, seeds roles (and demo users when configured) on
startup, and closes the stores on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.authors import router as authors_router
from api.routes.books import router as books_router
from api.routes.users import router as users_router
from auth.dependencies import require
from auth.flow import AuthFlow
from auth.guard import AccessGuard
from auth.models import AUTHENTICATED
from auth.seed import seed_roles, seed_users
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenIssuer
from catalog.store import CatalogStore
from core.config import Settings, get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("bookstore.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def _build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open stores and seed on startup; close stores on shutdown.

        Roles are seeded before users because seed_users() grants them.
        """
        logger.info("Bookstore API starting up")
        app.state.user_store = UserStore(settings.database_url)
        app.state.catalog = CatalogStore(settings.database_url)
        seed_roles(app.state.user_store)
        if settings.demo_user_password:
            seed_users(app.state.user_store, settings.demo_user_password)
        app.state.auth_flow = AuthFlow(app.state.user_store, app.state.token_issuer)
        logger.info("Stores initialized")

        yield

        app.state.catalog.close()
        app.state.user_store.close()
        logger.info("Bookstore API shutdown complete")

    return lifespan


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly. The one exception is the login 401, which echoes the
# submitted body (see api/routes/users.py).
# ---------------------------------------------------------------------------


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error and Retry-After when a limit is hit."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc))
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all HTTP exceptions, keeping their headers.

    Route handlers and auth dependencies raise HTTPException with a dict
    detail; use it directly as the error field rather than stringifying it.
    Headers matter here: 401s carry WWW-Authenticate: Bearer.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
        ).model_dump(),
        headers=headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="An unexpected error occurred.")
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Raises pydantic.ValidationError (bad/missing settings) or
    MisconfiguredSigningKey (bad token config). Either one stops startup.
    """
    settings = settings or get_settings()
    token_config = TokenConfig.from_settings(settings)

    app = FastAPI(
        title="Bookstore API",
        description="Authors and books, with bearer-token authentication and role-based access.",
        version=VERSION,
        lifespan=_build_lifespan(settings),
        # Built-in /docs, /redoc and /openapi.json are replaced below with
        # authenticated routes.
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.token_issuer = TokenIssuer(token_config)
    app.state.access_guard = AccessGuard(token_config)

    # Middleware
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(SlowAPIMiddleware)
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter
    app.middleware("http")(log_requests)

    # Routers
    app.include_router(users_router, prefix="/api", tags=["Users"])
    app.include_router(authors_router, prefix="/api", tags=["Authors"])
    app.include_router(books_router, prefix="/api", tags=["Books"])

    # Exception handlers
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/docs", include_in_schema=False, dependencies=[Depends(require(AUTHENTICATED))])
    async def docs():
        """Swagger UI -- requires authentication."""
        return get_swagger_ui_html(openapi_url="/openapi.json", title="Bookstore API")

    @app.get("/redoc", include_in_schema=False, dependencies=[Depends(require(AUTHENTICATED))])
    async def redoc():
        """ReDoc UI -- requires authentication."""
        return get_redoc_html(openapi_url="/openapi.json", title="Bookstore API")

    @app.get("/openapi.json", include_in_schema=False, dependencies=[Depends(require(AUTHENTICATED))])
    async def openapi() -> JSONResponse:
        """OpenAPI schema -- requires authentication."""
        return JSONResponse(app.openapi())

    @app.get("/api/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness, version and database reachability. No auth, no rate limit."""
        try:
            database = "ok" if request.app.state.user_store.ping() else "error"
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            database = "error"
        return HealthResponse(
            status="healthy" if database == "ok" else "degraded",
            version=VERSION,
            components={"app": "ok", "database": database},
        )

    logger.info(
        "Token issuer configured (issuer=%s, lifetime=%ss)",
        token_config.issuer,
        int(token_config.lifetime.total_seconds()),
    )
    return app
