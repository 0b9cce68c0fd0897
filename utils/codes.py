"""
One-time auth codes:
- six-digit numeric codes from the OS CSPRNG
- SHA-256 hex digests for storage, so plaintext codes are never persisted
- email-scoped digests for email change, binding a code to its target address
"""
from __future__ import annotations

import hashlib
import secrets

CODE_MIN = 100000
CODE_MAX = 999999


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_code() -> str:
    """Return a uniformly random code in [100000, 999999] as a string."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def verify_code(code: str, digest: str) -> bool:
    return constant_time_compare(hash_code(code), digest)


def hash_email_scoped(code: str, email: str) -> str:
    """Digest of `normalized_email:code`; a code issued for one address fails for any other."""
    return hash_code(f"{normalize_email(email)}:{code}")


def verify_email_scoped(code: str, email: str, digest: str) -> bool:
    return constant_time_compare(hash_email_scoped(code, email), digest)


def constant_time_compare(a: str, b: str) -> bool:
    # length mismatch returns early; only the digest length class leaks
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a.encode("utf-8"), b.encode("utf-8")):
        result |= x ^ y
    return result == 0
