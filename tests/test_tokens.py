"""Unit tests for auth/tokens.py -- password hashing, JWTs, reset-token hashing."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from _helpers import TEST_SECRET
from auth.models import User
from auth.tokens import BCRYPT_MAX_BYTES, PasswordHasher, TokenIssuer, generate_reset_token, hash_reset_token


def _user() -> User:
    return User(id=7, email="ada@example.com", name="Ada", hashed_password="x", roles={"ROLE_OWNER", "ROLE_TENANT"})


class TestPasswordHasher:
    def test_hash_is_salted_and_verifies(self) -> None:
        hasher = PasswordHasher()
        first = hasher.hash("s3cret!")
        second = hasher.hash("s3cret!")
        assert first != second
        assert hasher.verify("s3cret!", first)
        assert not hasher.verify("wrong", first)

    def test_verify_rejects_non_bcrypt_hash(self) -> None:
        with pytest.raises(ValueError):
            PasswordHasher().verify("s3cret!", "plaintext-not-a-hash")

    def test_password_at_bcrypt_limit_is_accepted(self) -> None:
        hasher = PasswordHasher()
        exact = "p" * BCRYPT_MAX_BYTES
        assert hasher.verify(exact, hasher.hash(exact))

    def test_password_over_bcrypt_limit(self) -> None:
        hasher = PasswordHasher()
        with pytest.raises(ValueError, match="72 bytes"):
            hasher.hash("p" * 80)
        stored = hasher.hash("p" * BCRYPT_MAX_BYTES)
        assert hasher.verify("p" * 80, stored) is False


class TestTokenIssuer:
    def test_issue_and_decode(self) -> None:
        issuer = TokenIssuer(TEST_SECRET, 3600)
        payload = issuer.decode(issuer.issue(_user()))
        assert payload["sub"] == "ada@example.com"
        assert payload["user_id"] == 7
        assert payload["roles"] == ["ROLE_OWNER", "ROLE_TENANT"]

    def test_wrong_key_is_rejected(self) -> None:
        token = TokenIssuer(TEST_SECRET, 3600).issue(_user())
        assert TokenIssuer("another-secret-key-that-is-long-enough", 3600).decode(token) is None

    def test_expired_token_is_rejected(self) -> None:
        token = TokenIssuer(TEST_SECRET, -10).issue(_user())
        assert TokenIssuer(TEST_SECRET, 3600).decode(token) is None

    def test_garbage_is_rejected(self) -> None:
        assert TokenIssuer(TEST_SECRET, 3600).decode("not.a.jwt") is None

    def test_token_without_subject_is_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"user_id": 7, "exp": exp}, TEST_SECRET, algorithm="HS256")
        assert TokenIssuer(TEST_SECRET, 3600).decode(token) is None


class TestResetTokens:
    def test_generated_tokens_are_unique_and_url_safe(self) -> None:
        tokens = {generate_reset_token() for _ in range(20)}
        assert len(tokens) == 20
        assert all(t.replace("-", "").replace("_", "").isalnum() for t in tokens)

    def test_hash_is_deterministic_and_keyed(self) -> None:
        assert hash_reset_token(TEST_SECRET, "abc") == hash_reset_token(TEST_SECRET, "abc")
        assert hash_reset_token(TEST_SECRET, "abc") != hash_reset_token(TEST_SECRET + "x", "abc")
        assert len(hash_reset_token(TEST_SECRET, "abc")) == 64
