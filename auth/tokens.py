"""
auth/tokens.py -- Password hashing, JWT issuance, and reset-token utilities.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). Its cost factor makes
       brute-force of low-entropy secrets expensive. PasswordHasher is the
       injectable wrapper the auth workflow depends on.

  JWT: python-jose with HS256. TokenIssuer signs tokens with SECRET_KEY and
       carries sub (email), user_id, roles, and expiry. decode() returns None
       on any failure -- the dependency layer turns that into a 401.

  Reset tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. Only
       HMAC-SHA256(SECRET_KEY, raw_token) is stored, so a leaked DB does not
       yield usable reset links. The hash is deterministic, so lookup is O(1)
       by UNIQUE index; bcrypt's slowness is unnecessary for random tokens.

Layer rule: no imports from api/ or core/. Keys and durations are passed in
by the composition root (api/main.py lifespan).
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.models import User

logger = logging.getLogger("propertyauth.auth")

_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes of a password; bcrypt 5 refuses longer input.
BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError if the password is longer than BCRYPT_MAX_BYTES once
    UTF-8 encoded. The request models reject such passwords with a 422 first.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Raises ValueError if hashed is not a bcrypt hash. A password over
    BCRYPT_MAX_BYTES can never have been stored, so it simply does not match.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode("utf-8"))


class PasswordHasher:
    """One-way hash + verify for credentials, backed by bcrypt."""

    def hash(self, plain: str) -> str:
        return hash_password(plain)

    def verify(self, plain: str, hashed: str) -> bool:
        return verify_password(plain, hashed)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Issues and verifies signed bearer tokens for authenticated users.

    Args:
        secret_key:     HMAC key for HS256 signing (>= 32 chars, see core/config.py).
        expire_seconds: Token lifetime. Sessions end when the token expires;
                        the server keeps no session state.
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, user: User) -> str:
        """Encode a signed JWT for the user. The email is the subject claim."""
        expire = datetime.now(timezone.utc) + timedelta(seconds=self.expire_seconds)
        payload = {
            "sub": user.email,
            "user_id": user.id,
            "roles": sorted(user.roles),
            "exp": expire,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def decode(self, token: str) -> dict | None:
        """Decode and verify a JWT. Returns the payload dict or None on any failure.

        Expiry is checked by jose; an expired token decodes to None.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if not payload.get("sub"):
            return None
        return payload


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


def generate_reset_token() -> str:
    """Return a fresh URL-safe reset token (256 bits of entropy)."""
    return secrets.token_urlsafe(32)


def hash_reset_token(secret_key: str, raw_token: str) -> str:
    """Return HMAC-SHA256(secret_key, raw_token) as a hex string."""
    return hmac.new(
        secret_key.encode(),
        raw_token.encode(),
        hashlib.sha256,
    ).hexdigest()
