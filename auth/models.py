"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). Dataclasses own
domain shape; stores and the workflow do the work. PublicUserView.from_user()
is the one mapping that lives here, colocated with the projection it builds.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Role:
    """A named permission group, e.g. "ROLE_TENANT".

    Roles are seeded at startup (RoleStore.seed) and are read-only from the
    auth workflow's point of view.
    """

    name: str
    id: int | None = None


@dataclass
class User:
    """A registered identity.

    email is the identity key and is unique across all users (enforced by a
    UNIQUE constraint in auth/store.py). hashed_password is always a bcrypt
    hash, never plaintext. roles holds role names, not Role records.

    id and created_at are None until the store writes the record.
    """

    email: str
    name: str
    hashed_password: str
    phone: str | None = None
    profile_image: str | None = None
    roles: set[str] = field(default_factory=set)
    id: int | None = None
    created_at: str | None = None


@dataclass
class PasswordResetToken:
    """A persisted, single-use password reset grant.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_token). The raw token only ever
    exists inside the reset link sent to the user.
    used_at is None until the token is redeemed.
    """

    user_id: int
    token_hash: str
    expires_at: str  # ISO 8601, UTC
    id: int | None = None
    used_at: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class PublicUserView:
    """Projection of a User without secret fields. Safe to return to callers."""

    id: int | None
    name: str
    email: str
    roles: tuple[str, ...]
    phone: str | None = None
    profile_image: str | None = None

    @classmethod
    def from_user(cls, user: User) -> PublicUserView:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            roles=tuple(sorted(user.roles)),
            phone=user.phone,
            profile_image=user.profile_image,
        )


@dataclass(frozen=True)
class AuthenticatedSession:
    """Result of a successful login. Never persisted."""

    token: str
    user: PublicUserView
    expires_in: int
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password
