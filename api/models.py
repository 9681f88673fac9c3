"""
API request and response models for SecureAuth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only bound field sizes. Content rules (username syntax, email
grammar, password strength) belong to AuthService so that the check order and
the error messages are the same for every caller, HTTP or CLI.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import UserView

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    login=True (the default) chains straight into a login on success, which is
    what the registration page does. login=False only creates the account.
    """

    username: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=128)
    password_confirmation: str = Field(default="", max_length=128)
    csrf_token: str = Field(default="", max_length=128)
    login: bool = True


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=128)
    csrf_token: str = Field(default="", max_length=128)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """A user as shown in listings and /me. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    created_at: Optional[str] = None

    @classmethod
    def from_view(cls, user: UserView) -> "UserResponse":
        return cls(id=user.id, username=user.username, email=user.email, created_at=user.created_at)


class CsrfResponse(BaseModel):
    """Response for GET /api/v1/auth/csrf."""

    model_config = ConfigDict(frozen=True)

    csrf_token: str


class AuthResultResponse(BaseModel):
    """Outcome of register/login: a message plus the logged-in user, if any."""

    model_config = ConfigDict(frozen=True)

    message: str
    authenticated: bool
    user: Optional[UserResponse] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
