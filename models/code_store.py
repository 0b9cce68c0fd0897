"""Persistence for one-time auth codes.

A code is valid while `used` is false and `expires_at` is in the future; when
several are valid for the same user and type, the newest wins.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update

from models.auth_code import AuthCode, AuthCodeType
from models.base_model import utcnow


def create(session, user_id: str, code_hash: str, code_type: AuthCodeType, expires_at: datetime) -> AuthCode:
    code = AuthCode(user_id=user_id, code_hash=code_hash, code_type=code_type, expires_at=expires_at)
    session.add(code)
    session.flush()
    return code


def find_valid(session, user_id: str, code_type: AuthCodeType) -> Optional[AuthCode]:
    return session.execute(
        select(AuthCode)
        .where(
            AuthCode.user_id == user_id,
            AuthCode.code_type == code_type,
            AuthCode.used.is_(False),
            AuthCode.expires_at > utcnow(),
        )
        .order_by(AuthCode.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()


def mark_used(session, code_id: str) -> bool:
    """Flip `used` on an unused code; False if someone else already did."""
    result = session.execute(
        update(AuthCode)
        .where(AuthCode.id == code_id, AuthCode.used.is_(False))
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def invalidate(session, user_id: str, code_type: AuthCodeType) -> int:
    """Burn every unused code of `code_type` for the user; returns how many."""
    result = session.execute(
        update(AuthCode)
        .where(
            AuthCode.user_id == user_id,
            AuthCode.code_type == code_type,
            AuthCode.used.is_(False),
        )
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
