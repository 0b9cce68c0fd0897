"""Tests for password hashing and token-id hashing."""
import pytest

from api.errors import InternalError
from utils.security import generate_jti, hash_password, hash_token_id, verify_password


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-password")

        assert hashed != "s3cret-password"
        assert hashed.startswith("$argon2")
        assert verify_password("s3cret-password", hashed)

    def test_wrong_password(self):
        assert not verify_password("wrong-password", hash_password("s3cret-password"))

    def test_hashes_are_salted(self):
        assert hash_password("same-password") != hash_password("same-password")

    def test_unparseable_hash_is_internal_error(self):
        with pytest.raises(InternalError):
            verify_password("whatever", "not-an-argon2-hash")


class TestTokenIds:
    def test_jti_is_unique(self):
        assert generate_jti() != generate_jti()

    def test_hash_token_id(self):
        jti = generate_jti()

        digest = hash_token_id(jti)

        assert digest == hash_token_id(jti)
        assert len(digest) == 64
        assert jti not in digest
