"""
api/main.py -- FastAPI application entry point for SecureAuth.

Exposes the auth core (auth/) over HTTP. Responses are JSON; turning them
into pages and redirects is the front end's job.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. log_requests          -- method, path, status, latency per request
  3. security_headers      -- anti-framing / nosniff / no-store headers
  4. session_cookie        -- loads the Session from the cookie, writes it back

Lifespan builds the engine, store, hasher, session manager and AuthService
on startup and disposes the engine on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.dependencies import clear_session_cookie, set_session_cookie
from auth.errors import AuthServiceError, ErrorKind
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.sessions import SessionManager
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine

__version__ = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("secureauth.api")

# ---------------------------------------------------------------------------
# Error kind -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.NOT_AUTHENTICATED: 401,
    ErrorKind.CSRF: 403,
    ErrorKind.DUPLICATE: 409,
    ErrorKind.STORAGE: 500,
    ErrorKind.UNAVAILABLE: 503,
}

_SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
}


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


def build_auth_service(store: UserStore) -> AuthService:
    """Wire the hasher and session manager from settings around a store."""
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=_settings.bcrypt_rounds),
        sessions=SessionManager(ttl_seconds=_settings.session_ttl_seconds),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. A database that cannot be reached at startup is logged but does
    not stop the server: each request that needs it answers 503 instead.
    """
    logger.info("SecureAuth API starting up")
    store = UserStore(create_db_engine(_settings.resolved_database_url()))
    if _settings.auto_create_schema:
        try:
            store.init_schema()
        except AuthServiceError:
            logger.error("Could not create the users table -- requests will fail until the database is reachable")
    app.state.user_store = store
    app.state.auth_service = build_auth_service(store)
    logger.info("Auth initialized (backend=%s)", store.engine.url.get_backend_name())

    yield

    app.state.user_store.close()
    logger.info("SecureAuth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SecureAuth API",
    description="Username/password registration, login and session management.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# @app.middleware("http") wraps everything registered before it, so the last
# one declared runs first. Declaration order below is innermost-first:
# session_cookie, security_headers, log_requests, then TrustedHost.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def session_cookie(request: Request, call_next):
    """Attach the client's Session to request.state and persist the cookie.

    The cookie is written only for a stored session whose id differs from
    the one sent (first CSRF token, or regeneration at login), and expired
    when the request terminated the session (logout). Requests that never
    store their session get no cookie.
    """
    cookie_name = _settings.session_cookie_name
    sessions = request.app.state.auth_service.sessions
    sent_id = request.cookies.get(cookie_name)
    session = sessions.load(sent_id)
    request.state.session = session

    response = await call_next(request)

    if session.terminated:
        if sent_id:
            clear_session_cookie(response, cookie_name, secure=_settings.secure_cookies)
    elif session.id != sent_id and sessions.is_stored(session):
        set_session_cookie(response, session.id, cookie_name, secure=_settings.secure_cookies)
    return response


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if request.url.path.startswith("/api/v1/auth"):
        response.headers["Cache-Control"] = "no-store"
    return response


@app.middleware("http")
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


app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthServiceError)
async def auth_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Render any auth-core failure. message is user-safe by construction."""
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(exc.kind, 500),
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.kind.value,
                message=exc.message,
                detail=exc.detail or exc.reason,
            )
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="request_validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a dict detail ({"code", "message"}).
    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged server-side only, never put in the response
    body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, current version, and whether the database answers."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
