"""
auth/errors.py -- Typed failures raised by the auth workflow.

Every error carries a stable machine-readable code and a human-readable
message. The workflow raises; the route layer (api/routes/v1/auth.py) maps
each class to an HTTP status. Nothing in auth/ knows about HTTP.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all auth workflow failures."""

    code = "auth_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DuplicateIdentity(AuthError):
    """Signup with an email that is already registered."""

    code = "duplicate_identity"


class RoleNotFound(AuthError):
    """A requested role, or the default seed role, does not exist.

    is_config_error is True when the missing role was the default role: that
    is a deployment problem (unseeded DB), not a client mistake.
    """

    code = "role_not_found"

    def __init__(self, message: str, is_config_error: bool = False) -> None:
        super().__init__(message)
        self.is_config_error = is_config_error


class UnknownIdentity(AuthError):
    """No user is registered under the given email."""

    code = "unknown_identity"


class InvalidCredentials(AuthError):
    """The email exists but the password did not verify."""

    code = "invalid_credentials"


class InvalidResetToken(AuthError):
    """A password reset token is unknown, expired, or already used."""

    code = "invalid_reset_token"
