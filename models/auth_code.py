"""
AuthCode model: hashed six-digit one-time codes for email confirmation,
password reset and email change. Rows are never deleted; `used` is the only
column that changes after insert.
"""
import enum

from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey
from models.base_model import BaseModel, Base


class AuthCodeType(str, enum.Enum):
    EMAIL_CONFIRMATION = "email_confirmation"
    PASSWORD_RESET = "password_reset"
    EMAIL_CHANGE = "email_change"


class AuthCode(BaseModel, Base):
    __tablename__ = "auth_codes"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    code_type = Column(
        Enum(AuthCodeType, name="auth_code_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False)
