"""User lookups and credential updates used by the auth flows."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import exists, func, select, update
from sqlalchemy.orm import aliased

from models.base_model import utcnow
from models.user import User
from utils.codes import normalize_email


def find_by_email(session, email: str) -> Optional[User]:
    return session.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    ).scalar_one_or_none()


def find_by_id(session, user_id: str) -> Optional[User]:
    return session.get(User, user_id)


def email_exists(session, email: str, exclude_user_id: str | None = None) -> bool:
    """True if any user (other than `exclude_user_id`) owns `email`, ignoring case."""
    query = select(User.id).where(func.lower(User.email) == normalize_email(email))
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    return session.execute(query.limit(1)).first() is not None


def create_user(session, first_name: str, last_name: str, email: str, hashed_password: str) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=normalize_email(email),
        hashed_password=hashed_password,
        email_confirmed=False,
    )
    session.add(user)
    session.flush()
    return user


def confirm_email(session, user_id: str) -> None:
    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(email_confirmed=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


def update_password(session, user_id: str, hashed_password: str) -> None:
    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(hashed_password=hashed_password, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


def update_email_if_available(session, user_id: str, email: str) -> bool:
    """Set the user's email (and mark it confirmed) unless another account owns it.

    The ownership check is part of the UPDATE itself, so an address claimed
    between request and confirm is caught at write time. Returns whether a
    row changed.
    """
    email = normalize_email(email)
    other = aliased(User)
    result = session.execute(
        update(User)
        .where(
            User.id == user_id,
            ~exists().where(func.lower(other.email) == email, other.id != user_id),
        )
        .values(email=email, email_confirmed=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
