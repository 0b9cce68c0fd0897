"""
JWT access and refresh tokens (PyJWT, HS256 by default).

Both kinds are signed with the same secret, so each decoder also checks the
`token_type` claim; a refresh token can never pass as an access token or the
other way round. Expired signatures raise TokenExpired, every other decode
failure raises TokenInvalid.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import jwt

from api.errors import InternalError, TokenExpired, TokenInvalid
from utils.security import generate_jti

ACCESS = "access"
REFRESH = "refresh"
DEFAULT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class AccessTokenClaims:
    sub: str
    email: str
    exp: int
    iat: int
    token_type: str = ACCESS


@dataclass(frozen=True)
class RefreshTokenClaims:
    sub: str
    exp: int
    iat: int
    jti: str
    token_type: str = REFRESH
    # tokens issued before the claim existed decode as session-only
    remember_me: bool = False


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode(payload: Dict[str, Any], secret: str, algorithm: str) -> str:
    try:
        return jwt.encode(payload, secret, algorithm=algorithm)
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        raise InternalError("Failed to sign token") from exc


def _decode(token: str, secret: str, algorithm: str, expected_type: str) -> Dict[str, Any]:
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "exp", "iat", "token_type"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError:
        raise TokenInvalid()

    if decoded.get("token_type") != expected_type:
        raise TokenInvalid()
    return decoded


def issue_access(user_id: str, email: str, secret: str, ttl_seconds: int,
                 algorithm: str = DEFAULT_ALGORITHM) -> str:
    now = _now()
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "token_type": ACCESS,
    }
    return _encode(payload, secret, algorithm)


def issue_refresh(user_id: str, secret: str, ttl_seconds: int, remember_me: bool,
                  algorithm: str = DEFAULT_ALGORITHM) -> Tuple[str, str]:
    """Return (signed token, raw jti). Callers persist only the hash of the jti."""
    now = _now()
    jti = generate_jti()
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "token_type": REFRESH,
        "jti": jti,
        "remember_me": bool(remember_me),
    }
    return _encode(payload, secret, algorithm), jti


def decode_access(token: str, secret: str, algorithm: str = DEFAULT_ALGORITHM) -> AccessTokenClaims:
    decoded = _decode(token, secret, algorithm, ACCESS)
    if not isinstance(decoded.get("email"), str):
        raise TokenInvalid()
    return AccessTokenClaims(
        sub=str(decoded["sub"]),
        email=decoded["email"],
        exp=decoded["exp"],
        iat=decoded["iat"],
    )


def decode_refresh(token: str, secret: str, algorithm: str = DEFAULT_ALGORITHM) -> RefreshTokenClaims:
    decoded = _decode(token, secret, algorithm, REFRESH)
    if not isinstance(decoded.get("jti"), str) or not decoded["jti"]:
        raise TokenInvalid()
    return RefreshTokenClaims(
        sub=str(decoded["sub"]),
        exp=decoded["exp"],
        iat=decoded["iat"],
        jti=decoded["jti"],
        remember_me=bool(decoded.get("remember_me", False)),
    )
