"""
RefreshToken model: one row per issued refresh token, keyed by the SHA-256 of its jti
so sessions can be revoked and rotated without storing the signed token.
Fields:
- user_id (String(36)) - FK to users.id
- token_hash (hex digest of the jti)
- revoked (bool) - flips false -> true exactly once, never back
- expires_at, created_at
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_refresh_tokens_token_hash", "token_hash"),
    )
