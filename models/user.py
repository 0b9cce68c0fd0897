from models.base_model import Base, BaseModel, utcnow
from sqlalchemy import Boolean, Column, DateTime, Index, String, func


class User(BaseModel, Base):
    __tablename__ = "users"
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    # stored trimmed and lowercased; the lower() index guards case-insensitive uniqueness
    email = Column(String(255), nullable=False, unique=True)
    hashed_password = Column(String(255), nullable=False)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow,
                        server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_users_email_lower", func.lower(email), unique=True),
    )
