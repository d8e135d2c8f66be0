"""CRUD helpers for User resources."""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import DuplicateEmail, DuplicateUsername, InvalidField, MissingField, NotFound
from ..db.session import fits_row_id
from ..models.user import User

logger = logging.getLogger(__name__)

USER_FIELDS = ("username", "name", "email", "password")
# The password is kept exactly as typed.
TRIMMED_FIELDS = frozenset({"username", "name", "email"})
UNIQUE_VIOLATION_RE = re.compile(
    r"\busers\.(username|email)\b|\bKey \((username|email)\)=|\b(?:users|ux_users)_(username|email)(?:_key)?\b"
)


def _clean(payload: dict[str, Any], field: str) -> str:
    value = payload.get(field)
    if value is None:
        raise MissingField(field)
    if not isinstance(value, str):
        raise InvalidField(field)
    if field in TRIMMED_FIELDS:
        value = value.strip()
    if not value:
        raise MissingField(field)
    return value


def _find_by(db: Session, column, value: str, *, exclude_id: int | None = None) -> User | None:
    stmt = select(User).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.execute(stmt).scalars().first()


def _violated_column(detail: str) -> str | None:
    """Name the users column a UNIQUE violation reports, never a value it echoes.

    SQLite says ``UNIQUE constraint failed: users.email``; PostgreSQL says
    ``Key (email)=(...)`` and names the ``users_email_key`` constraint.
    """
    match = UNIQUE_VIOLATION_RE.search(detail)
    if match is None:
        return None
    return next(group for group in match.groups() if group)


def _commit_or_duplicate(db: Session, username_error: DuplicateUsername, email_error: DuplicateEmail) -> None:
    """Commit; a UNIQUE violation that raced past the lookups maps to the same errors."""

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        column = _violated_column(str(exc.orig))
        if column == "email":
            raise email_error from exc
        if column == "username":
            raise username_error from exc
        raise


def list_users(db: Session) -> list[User]:
    return list(db.execute(select(User).order_by(User.id)).scalars().all())


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id) if fits_row_id(user_id) else None
    if user is None:
        raise NotFound(f"There doesn't exist a User resource with an ID of {user_id}")
    return user


def create_user(db: Session, payload: dict[str, Any]) -> User:
    data = {field: _clean(payload, field) for field in USER_FIELDS}

    username_error = DuplicateUsername("There already exists a User resource with the username that you provided")
    email_error = DuplicateEmail("There already exists a User resource with the email that you provided")
    if _find_by(db, User.username, data["username"]):
        raise username_error
    if _find_by(db, User.email, data["email"]):
        raise email_error

    user = User(**data)
    db.add(user)
    _commit_or_duplicate(db, username_error, email_error)
    db.refresh(user)
    logger.info("user.created", extra={"extra_data": {"user_id": user.id}})
    return user


def update_user(db: Session, user: User, payload: dict[str, Any]) -> User:
    changes = {field: _clean(payload, field) for field in USER_FIELDS if field in payload}

    username_error = DuplicateUsername(
        f"There already exists a User resource with a username of '{changes.get('username')}'"
    )
    email_error = DuplicateEmail(f"There already exists a User resource with an email of '{changes.get('email')}'")
    if "username" in changes and _find_by(db, User.username, changes["username"], exclude_id=user.id):
        raise username_error
    if "email" in changes and _find_by(db, User.email, changes["email"], exclude_id=user.id):
        raise email_error

    for field, value in changes.items():
        setattr(user, field, value)
    _commit_or_duplicate(db, username_error, email_error)
    db.refresh(user)
    logger.info("user.updated", extra={"extra_data": {"user_id": user.id, "fields": sorted(changes)}})
    return user


def delete_user(db: Session, user: User) -> None:
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info("user.deleted", extra={"extra_data": {"user_id": user_id}})
