"""
API request and response models for the property backend REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Input validation lives here, upstream of the auth workflow: by the time
AuthService.signup() runs, name length, email syntax and password length have
already been checked. Failures surface as 422 via the RequestValidationError
handler in api/main.py.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from auth.models import AuthenticatedSession, PublicUserView
from auth.tokens import BCRYPT_MAX_BYTES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Pragmatic address check: one "@", no whitespace, a dot in the domain part.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

PASSWORD_MIN_LENGTH = 6


def _strip_keys(data, keys: frozenset[str]):
    """Strip surrounding whitespace from the named string fields of a raw body."""
    if not isinstance(data, dict):
        return data
    return {k: v.strip() if k in keys and isinstance(v, str) else v for k, v in data.items()}


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Request models
#
# Passwords are taken exactly as sent. Only identity fields are stripped.
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup.

    role and roles are two independent ways of choosing roles. role is a bare
    name ("owner") that the workflow prefixes to "ROLE_OWNER"; roles is a list
    of full role names used verbatim. role wins when both are given.

    profile_image also accepts the camelCase key profileImage sent by the
    browser frontend.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=2, max_length=100, description="Name must be between 2 and 100 characters")
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=BCRYPT_MAX_BYTES)
    role: Optional[str] = Field(default=None, max_length=50)
    roles: Optional[list[str]] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    profile_image: Optional[str] = Field(default=None, alias="profileImage", max_length=2048)

    @model_validator(mode="before")
    @classmethod
    def strip_identity_fields(cls, data):
        return _strip_keys(data, frozenset({"name", "email", "role", "phone", "profile_image", "profileImage"}))

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)

    @field_validator("roles", mode="before")
    @classmethod
    def drop_blank_roles(cls, values: Optional[list]) -> Optional[list[str]]:
        """Strip entries and drop blanks so [""] behaves like no list at all."""
        if values is None:
            return None
        return [str(v).strip() for v in values if str(v).strip()]


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @model_validator(mode="before")
    @classmethod
    def strip_email(cls, data):
        return _strip_keys(data, frozenset({"email"}))


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/forgot-password."""

    email: str = Field(min_length=1, max_length=255)

    @model_validator(mode="before")
    @classmethod
    def strip_email(cls, data):
        return _strip_keys(data, frozenset({"email"}))


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password."""

    token: str = Field(min_length=1, max_length=512)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=BCRYPT_MAX_BYTES)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserView(BaseModel):
    """Public projection of a user. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int]
    name: str
    email: str
    roles: list[str]
    phone: Optional[str] = None
    profile_image: Optional[str] = None

    @classmethod
    def from_view(cls, view: PublicUserView) -> "UserView":
        return cls(
            id=view.id,
            name=view.name,
            email=view.email,
            roles=list(view.roles),
            phone=view.phone,
            profile_image=view.profile_image,
        )


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password
    expires_in: int
    user: UserView

    @classmethod
    def from_session(cls, session: AuthenticatedSession) -> "LoginResponse":
        return cls(
            token=session.token,
            token_type=session.token_type,
            expires_in=session.expires_in,
            user=UserView.from_view(session.user),
        )


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. for forgot-password and reset-password."""

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
    components: dict[str, str]
