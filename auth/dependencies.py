"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The browser frontend sends the login token as "Authorization: Bearer <token>".
get_current_email() verifies it and yields the email from the "sub" claim;
routes hand that email to AuthService.get_current_user().

try_get_current_email() is the soft variant (returns None on failure).
get_current_email() wraps it and raises HTTP 401 if unauthenticated.
get_auth_service() returns the AuthService composed in the app lifespan.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.service import AuthService
from auth.tokens import TokenIssuer


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def try_get_current_email(request: Request) -> str | None:
    """Return the email bound to a valid Bearer token, or None.

    Never raises -- callers that need a hard 401 should use get_current_email().
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token_issuer: TokenIssuer = request.app.state.token_issuer
    payload = token_issuer.decode(auth_header[7:])
    if payload is None:
        return None
    return payload["sub"]


def get_current_email(request: Request) -> str:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(email: str = Depends(get_current_email)): ...
    """
    email = try_get_current_email(request)
    if email is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return email
