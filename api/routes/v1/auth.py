"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/signup           -- register; 201 with the public user view
  POST /api/v1/auth/login            -- password login; returns bearer token + user
  GET  /api/v1/auth/me               -- current user (requires Bearer token)
  POST /api/v1/auth/forgot-password  -- start a reset; identical response for any email
  POST /api/v1/auth/reset-password   -- redeem a reset token and set a new password

Error mapping:
  The workflow raises AuthError subclasses; this module is the only place
  that turns them into HTTP statuses. Login failures use 400 rather than 401
  because the browser client treats any 401 as "session expired" and logs the
  user out.

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UserView,
)
from auth.dependencies import get_auth_service, get_current_email
from auth.errors import (
    AuthError,
    DuplicateIdentity,
    InvalidCredentials,
    InvalidResetToken,
    RoleNotFound,
    UnknownIdentity,
)
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/signup:           public
# - POST /api/v1/auth/login:            public, rate-limited
# - GET  /api/v1/auth/me:               requires auth (get_current_email)
# - POST /api/v1/auth/forgot-password:  public
# - POST /api/v1/auth/reset-password:   public, the reset token is the credential
router = APIRouter()


def _login_rate_limit() -> str:
    # slowapi evaluates a callable limit on every request.
    return get_settings().login_rate_limit


_FORGOT_PASSWORD_ACK = "If that email is registered, a reset link has been sent."

_STATUS_BY_ERROR: dict[type[AuthError], int] = {
    DuplicateIdentity: 409,
    RoleNotFound: 400,
    UnknownIdentity: 404,
    InvalidCredentials: 400,
    InvalidResetToken: 400,
}


def _raise_http(exc: AuthError, status_code: int | None = None) -> NoReturn:
    if status_code is None:
        if isinstance(exc, RoleNotFound) and exc.is_config_error:
            status_code = 500
        else:
            status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    raise HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message},
    ) from exc


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=UserView, status_code=201)
def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)) -> UserView:
    """Register a new account. Defaults to the tenant role when no role is given."""
    try:
        view = service.signup(
            name=body.name,
            email=body.email,
            password=body.password,
            role=body.role,
            roles=body.roles,
            phone=body.phone,
            profile_image=body.profile_image,
        )
    except AuthError as exc:
        _raise_http(exc)
    return UserView.from_view(view)


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token and the user.

    Unknown email and wrong password are reported with different codes
    (unknown_identity / invalid_credentials) so the client can tell the user
    which field is wrong. Both use status 400.
    """
    service: AuthService = request.app.state.auth_service
    try:
        session = service.login(body.email, body.password)
    except AuthError as exc:
        _raise_http(exc, status_code=400)

    resp = JSONResponse(status_code=200, content=LoginResponse.from_session(session).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/forgot-password", response_model=MessageResponse)
def forgot_password(body: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)) -> MessageResponse:
    """Start a password reset.

    The response is the same whether or not the email is registered, so this
    endpoint cannot be used to discover accounts.
    """
    service.process_forgot_password(body.email)
    return MessageResponse(message=_FORGOT_PASSWORD_ACK)


@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password(body: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)) -> MessageResponse:
    """Redeem a reset token from the emailed link and set a new password."""
    try:
        service.reset_password(body.token, body.new_password)
    except AuthError as exc:
        _raise_http(exc)
    return MessageResponse(message="Password has been reset. You can now log in.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserView)
def me(
    email: str = Depends(get_current_email),
    service: AuthService = Depends(get_auth_service),
) -> UserView:
    """Return the public view of the currently authenticated user."""
    try:
        view = service.get_current_user(email)
    except AuthError as exc:
        _raise_http(exc)
    return UserView.from_view(view)
