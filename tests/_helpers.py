"""Shared test helpers - importable from test modules."""

from __future__ import annotations

from sqlalchemy.engine import Engine

from auth.service import AuthService
from auth.store import RoleStore, UserStore
from auth.tokens import PasswordHasher, TokenIssuer

TEST_SECRET = "test-secret-key-for-the-property-auth-suite"
SEED_ROLES = ["ROLE_TENANT", "ROLE_OWNER", "ROLE_LANDLORD"]


class RecordingSink:
    """Notification sink double. Records (destination, message) pairs."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def notify(self, destination: str, message: str) -> None:
        self.sent.append((destination, message))


def build_service(engine: Engine, sink, *, reset_token_expire_seconds: int = 3600) -> AuthService:
    return AuthService(
        UserStore(engine),
        RoleStore(engine),
        PasswordHasher(),
        TokenIssuer(TEST_SECRET, 3600),
        sink,
        secret_key=TEST_SECRET,
        reset_link_base="http://localhost:3000/reset-password",
        reset_token_expire_seconds=reset_token_expire_seconds,
    )
