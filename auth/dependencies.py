"""
auth/dependencies.py -- FastAPI Depends() helpers and session cookie transport.

The session middleware in api/main.py loads the client's Session (from the
session cookie) into request.state.session before the route runs and writes
the cookie back afterwards. Route handlers reach it through these helpers:

  get_session()          -- the Session for this request (any state).
  get_auth_service()     -- the AuthService on app.state.
  require_authenticated()-- the Session, or HTTP 401 if it is not logged in.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Request/HTTPException)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.errors import NotAuthenticatedError
from auth.service import AuthService
from auth.sessions import Session


def get_session(request: Request) -> Session:
    """Return the Session the middleware attached to this request."""
    return request.state.session


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def require_authenticated(request: Request) -> Session:
    """Require a logged-in session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(session: Session = Depends(require_authenticated)): ...
    """
    session = get_session(request)
    if not get_auth_service(request).is_authenticated(session):
        err = NotAuthenticatedError()
        raise HTTPException(
            status_code=401,
            detail={"code": err.kind.value, "message": err.message},
        )
    return session


def set_session_cookie(response, session_id: str, cookie_name: str, secure: bool = False) -> None:
    """Write the opaque session id as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POSTs -- a second CSRF layer under
        the per-session token.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    No max_age: a browser-session cookie; idle expiry is enforced server-side
        by SessionManager.
    """
    response.set_cookie(
        cookie_name,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=secure,
        path="/",
    )


def clear_session_cookie(response, cookie_name: str, secure: bool = False) -> None:
    """Expire the session cookie on the client (max-age=0, past expiry date)."""
    response.delete_cookie(cookie_name, path="/", httponly=True, samesite="lax", secure=secure)
