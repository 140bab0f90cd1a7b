"""
auth/service.py -- The authentication workflow: signup, login, current user,
and password reset.

AuthService is assembled once at startup (api/main.py lifespan) from its
collaborators and holds no per-request state. Every method is one synchronous
unit of work that either returns a result or raises an AuthError subclass
(auth/errors.py). The route layer decides which HTTP status each error maps to.

Policy notes:
  Login reports "email not registered" and "wrong password" as different
  errors. This is a product decision: the frontend shows users which field is
  wrong. The trade-off is that login responses reveal whether an email is
  registered.

  Forgot-password is the opposite: the caller always gets the same outcome,
  whether or not the email exists. A failure to store the reset token or to
  deliver the message is logged rather than surfaced.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateIdentity, InvalidCredentials, InvalidResetToken, RoleNotFound, UnknownIdentity
from auth.models import AuthenticatedSession, PasswordResetToken, PublicUserView, Role, User
from auth.notify import NotificationSink
from auth.store import RoleStore, UserStore
from auth.tokens import PasswordHasher, TokenIssuer, generate_reset_token, hash_reset_token

logger = logging.getLogger("propertyauth.auth")

_ROLE_PREFIX = "ROLE_"


class AuthService:
    """Orchestrates the auth workflow over explicitly injected collaborators.

    Args:
        users:      Credential store (users, role links, reset tokens).
        roles:      Role store; roles are looked up, never created here.
        hasher:     Password hasher.
        tokens:     Bearer token issuer.
        notifier:   Sink for password reset messages.
        secret_key: Key for hashing reset tokens before they are stored.
        reset_link_base:     URL the raw reset token is appended to.
        reset_token_expire_seconds: Lifetime of a reset token.
        default_role:        Role assigned when signup names none.
    """

    def __init__(
        self,
        users: UserStore,
        roles: RoleStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        notifier: NotificationSink,
        *,
        secret_key: str,
        reset_link_base: str,
        reset_token_expire_seconds: int = 3600,
        default_role: str = "ROLE_TENANT",
    ) -> None:
        self._users = users
        self._roles = roles
        self._hasher = hasher
        self._tokens = tokens
        self._notifier = notifier
        self._secret_key = secret_key
        self._reset_link_base = reset_link_base
        self._reset_token_expire_seconds = reset_token_expire_seconds
        self._default_role = default_role

    # ------------------------------------------------------------------
    # Signup
    # ------------------------------------------------------------------

    def signup(
        self,
        name: str,
        email: str,
        password: str,
        role: str | None = None,
        roles: Iterable[str] | None = None,
        phone: str | None = None,
        profile_image: str | None = None,
    ) -> PublicUserView:
        """Register a new user and return its public view.

        Input shape (name length, email syntax, password length) is validated
        by the caller. Raises DuplicateIdentity or RoleNotFound, or ValueError
        from the hasher for a password over the bcrypt limit; on any of them,
        nothing is written.
        """
        if self._users.exists_by_email(email):
            raise DuplicateIdentity("Email already exists")

        role_names = self._resolve_roles(role, roles)

        user = User(
            email=email,
            name=name,
            hashed_password=self._hasher.hash(password),
            phone=phone,
            profile_image=profile_image,
            roles=role_names,
        )
        try:
            saved = self._users.save(user)
        except IntegrityError as exc:
            if not self._users.exists_by_email(email):
                raise
            # Lost a race with a concurrent signup for the same email.
            raise DuplicateIdentity("Email already exists") from exc

        logger.info("Registered user %s with roles %s", saved.id, sorted(saved.roles))
        return PublicUserView.from_user(saved)

    def _resolve_roles(self, role: str | None, roles: Iterable[str] | None) -> set[str]:
        """Pick the role set for a new user.

        Priority: a single role name (prefixed and uppercased), else a list
        of full role names taken verbatim, else the default role.
        """
        if role:
            name = _ROLE_PREFIX + role.upper()
            return {self._require_role(name, f"Error: Role '{name}' not found.").name}

        requested = list(roles) if roles is not None else []
        if requested:
            resolved: set[str] = set()
            for name in requested:
                resolved.add(self._require_role(name, f"Error: Role '{name}' not found.").name)
            return resolved

        found = self._roles.find_by_name(self._default_role)
        if found is None:
            logger.error("Default role %s is missing; seed the roles table", self._default_role)
            raise RoleNotFound(f"Error: Default role '{self._default_role}' not found.", is_config_error=True)
        return {found.name}

    def _require_role(self, name: str, message: str) -> Role:
        found = self._roles.find_by_name(name)
        if found is None:
            raise RoleNotFound(message)
        return found

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthenticatedSession:
        """Verify credentials and issue a bearer token.

        Raises UnknownIdentity if the email is not registered, and
        InvalidCredentials if the password does not verify.
        """
        user = self._users.find_by_email(email)
        if user is None:
            raise UnknownIdentity("This email is not registered.")

        verified = self.authenticate(email, password)
        token = self._tokens.issue(verified)
        logger.info("Login: user %s", verified.id)
        return AuthenticatedSession(
            token=token,
            user=PublicUserView.from_user(user),
            expires_in=self._tokens.expire_seconds,
        )

    def authenticate(self, email: str, password: str) -> User:
        """Check email + password against the stored hash.

        Every failure, including an unreadable stored hash, is reported as
        InvalidCredentials.
        """
        user = self._users.find_by_email(email)
        try:
            ok = user is not None and self._hasher.verify(password, user.hashed_password)
        except (ValueError, TypeError) as exc:
            logger.warning("Password verification error for user %s: %s", user.id if user else None, exc)
            raise InvalidCredentials("Incorrect password. Please try again.") from exc
        if not ok:
            raise InvalidCredentials("Incorrect password. Please try again.")
        return user

    # ------------------------------------------------------------------
    # Current user
    # ------------------------------------------------------------------

    def get_current_user(self, email: str) -> PublicUserView:
        """Return the public view for an already-authenticated email."""
        user = self._users.find_by_email(email)
        if user is None:
            raise UnknownIdentity("User not found")
        return PublicUserView.from_user(user)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def process_forgot_password(self, email: str) -> None:
        """Start a password reset. Always returns None.

        If the email is registered, a single-use token is persisted (hashed)
        and a reset link is sent to the notification sink. Otherwise nothing
        happens.
        """
        user = self._users.find_by_email(email)
        if user is None:
            logger.debug("Password reset requested for an unregistered email")
            return None

        raw_token = generate_reset_token()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._reset_token_expire_seconds)
        try:
            self._users.create_reset_token(
                PasswordResetToken(
                    user_id=user.id,
                    token_hash=hash_reset_token(self._secret_key, raw_token),
                    expires_at=expires_at.isoformat(),
                )
            )
        except SQLAlchemyError:
            logger.exception("Failed to store password reset token for user %s", user.id)
            return None

        link = f"{self._reset_link_base}?token={raw_token}"
        message = (
            "FORGOT PASSWORD\n"
            f"Hi {user.name}, use the link below to choose a new password.\n"
            f"LINK: {link}\n"
            f"The link expires at {expires_at.isoformat()} and works once."
        )
        try:
            self._notifier.notify(user.email, message)
        except Exception:
            logger.exception("Failed to deliver password reset message for user %s", user.id)
        return None

    def reset_password(self, token: str, new_password: str) -> None:
        """Redeem a reset token and set a new password.

        Raises InvalidResetToken if the token is unknown, expired, or already used.
        """
        record = self._users.get_reset_token_by_hash(hash_reset_token(self._secret_key, token))
        if record is None or record.used_at is not None or _is_expired(record.expires_at):
            raise InvalidResetToken("This reset link is invalid or has expired.")

        if not self._users.consume_reset_token(record.id, self._hasher.hash(new_password)):
            raise InvalidResetToken("This reset link is invalid or has expired.")
        logger.info("Password reset completed for user %s", record.user_id)


def _is_expired(expires_at: str) -> bool:
    return datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc)
