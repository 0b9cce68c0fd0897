"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JTI generation and hashing for refresh-token storage
"""
from __future__ import annotations

import hashlib
import uuid

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from api.errors import InternalError

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password using argon2.

    A mismatch is False; a stored hash argon2 cannot parse is an InternalError.
    """
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as exc:
        raise InternalError("Invalid password hash format") from exc


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def hash_token_id(jti: str) -> str:
    """SHA-256 hex of a refresh token's jti; the only trace of the token we store."""
    return hashlib.sha256(jti.encode("utf-8")).hexdigest()
