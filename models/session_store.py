"""
Refresh-token session store.

Rows are keyed by the hash of each token's jti, never the signed token. A row
is active iff `revoked` is false and `expires_at` is in the future. Revocation
is one-way.

`consume` is the only operation where concurrency matters: it is a single
conditional UPDATE, so of several callers racing on the same active row
exactly one sees a changed row. On Postgres the row lock taken by the first
UPDATE makes the others re-check the WHERE clause after it commits.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update

from models.base_model import utcnow
from models.refresh_token import RefreshToken


def _active(user_id: str, token_hash: str):
    return (
        RefreshToken.user_id == user_id,
        RefreshToken.token_hash == token_hash,
        RefreshToken.revoked.is_(False),
        RefreshToken.expires_at > utcnow(),
    )


def create(session, user_id: str, token_hash: str, expires_at: datetime) -> RefreshToken:
    token = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at, revoked=False)
    session.add(token)
    session.flush()
    return token


def is_active(session, user_id: str, token_hash: str) -> bool:
    count = session.execute(
        select(func.count(RefreshToken.id)).where(*_active(user_id, token_hash))
    ).scalar_one()
    return count > 0


def consume(session, user_id: str, token_hash: str) -> bool:
    """Revoke the matching active token; True only if it was active right now.

    Must run inside the caller's transaction together with whatever the
    consume authorizes (new token row, credential change).
    """
    result = session.execute(
        update(RefreshToken)
        .where(*_active(user_id, token_hash))
        .values(revoked=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def revoke_by_hash(session, token_hash: str) -> None:
    session.execute(
        update(RefreshToken)
        .where(RefreshToken.token_hash == token_hash)
        .values(revoked=True)
        .execution_options(synchronize_session=False)
    )


def revoke_all(session, user_id: str) -> int:
    result = session.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
