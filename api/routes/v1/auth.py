"""
api/routes/v1/auth.py -- Registration, login, logout and user listing endpoints.

Routes:
  GET  /api/v1/auth/csrf      -- issue a CSRF token for the next form (public)
  POST /api/v1/auth/register  -- create account, optionally log in (CSRF)
  POST /api/v1/auth/login     -- password login (CSRF)
  POST /api/v1/auth/logout    -- terminate session, clear cookie; idempotent
  GET  /api/v1/auth/me        -- current user (requires auth)
  GET  /api/v1/auth/users     -- list all users (requires auth)

Security:
  CSRF is verified before any field is looked at on register and login, so a
  forged submission is rejected whether or not its credentials are valid.
  Login failures share one message for unknown user and wrong password.
  Cache-Control: no-store is added to every /api/v1/auth response by the
  security headers middleware in api/main.py.

Errors raised by AuthService propagate as AuthServiceError and are rendered
by the handler in api/main.py -- route code does not build error bodies.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from api.models import (
    AuthResultResponse,
    CsrfResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from auth.dependencies import get_auth_service, get_session, require_authenticated
from auth.service import AuthService
from auth.sessions import Session


# Auth policy:
# - GET  /auth/csrf:      public -- every form render needs a token
# - POST /auth/register:  public + CSRF; 409 when already logged in
# - POST /auth/login:     public + CSRF
# - POST /auth/logout:    public -- terminating no session is not an error
# - GET  /auth/me:        requires auth (require_authenticated)
# - GET  /auth/users:     requires auth (require_authenticated)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/csrf", response_model=CsrfResponse)
def issue_csrf(
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
) -> CsrfResponse:
    """Rotate and return the session's CSRF token. Call once per form render."""
    return CsrfResponse(csrf_token=service.issue_csrf_token(session))


@router.post("/auth/register", response_model=AuthResultResponse, status_code=201)
def register(
    body: RegisterRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
) -> AuthResultResponse:
    """Create an account. With login=true the new user is logged in too."""
    if service.is_authenticated(session):
        raise HTTPException(
            status_code=409,
            detail={"code": "already_authenticated", "message": "You are already logged in."},
        )
    service.verify_csrf(session, body.csrf_token)

    if body.login:
        service.register_and_login(
            session, body.username, body.password, body.password_confirmation, body.email
        )
        return AuthResultResponse(
            message="User registered successfully",
            authenticated=True,
            user=UserResponse.from_view(session.user_view()),
        )

    service.register(body.username, body.password, body.password_confirmation, body.email)
    return AuthResultResponse(message="User registered successfully", authenticated=False)


@router.post("/auth/login", response_model=AuthResultResponse)
def login(
    body: LoginRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
) -> AuthResultResponse:
    """Authenticate with username and password; the session id is regenerated."""
    service.verify_csrf(session, body.csrf_token)
    service.login(session, body.username, body.password)
    return AuthResultResponse(
        message="Login successful",
        authenticated=True,
        user=UserResponse.from_view(session.user_view()),
    )


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """End the session. The middleware expires the cookie on the way out."""
    service.logout(session)
    return MessageResponse(message="Logged out.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(session: Session = Depends(require_authenticated)) -> UserResponse:
    """Return the logged-in user, read from the session (no database hit)."""
    return UserResponse.from_view(session.user_view())


@router.get("/auth/users", response_model=list[UserResponse])
def list_users(
    _session: Session = Depends(require_authenticated),
    service: AuthService = Depends(get_auth_service),
) -> list[UserResponse]:
    """Return every registered user, hash excluded, in registration order."""
    return [UserResponse.from_view(u) for u in service.list_users()]
