"""CRUD helpers for journal entries, always scoped to their owning user."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import InvalidField, MissingField, NotFound
from ..db.session import fits_row_id
from ..models.entry import Entry
from ..models.user import User
from ..services import timecodec

logger = logging.getLogger(__name__)

ENTRY_FIELDS = ("timezone", "localTime", "content")


def _require(payload: dict[str, Any], field: str) -> str:
    value = payload.get(field)
    if value is None or value == "":
        raise MissingField(field)
    if not isinstance(value, str):
        raise InvalidField(field)
    return value


def _timestamp(local_time: str, timezone: str) -> str:
    try:
        timecodec.parse_offset(timezone)
    except ValueError as exc:
        raise InvalidField(
            "timezone", "The 'timezone' in your request body must be a UTC offset of the form '+HH:MM' or '-HH:MM'"
        ) from exc
    try:
        instant = timecodec.to_utc(local_time, timezone)
    except ValueError as exc:
        raise InvalidField(
            "localTime", "The 'localTime' in your request body must be of the form 'YYYY-MM-DD HH:MM[:SS]'"
        ) from exc
    return timecodec.format_utc(instant)


def _owned(owner: User):
    return select(Entry).where(Entry.user_id == owner.id)


def list_entries(db: Session, owner: User, *, limit: int | None = None, offset: int = 0) -> list[Entry]:
    stmt = _owned(owner).order_by(Entry.id).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())


def count_entries(db: Session, owner: User) -> int:
    stmt = select(func.count()).select_from(Entry).where(Entry.user_id == owner.id)
    return int(db.execute(stmt).scalar_one())


def get_entry(db: Session, owner: User, entry_id: int) -> Entry:
    """Fetch one of ``owner``'s entries.

    Entries that exist but belong to someone else raise the very same
    ``NotFound`` as ids that were never issued.
    """
    entry = None
    if fits_row_id(entry_id):
        entry = db.execute(_owned(owner).where(Entry.id == entry_id)).scalars().first()
    if entry is None:
        raise NotFound(f"Your User doesn't have an Entry resource with an ID of {entry_id}")
    return entry


def create_entry(db: Session, owner: User, payload: dict[str, Any]) -> Entry:
    timezone, local_time, content = (_require(payload, field) for field in ENTRY_FIELDS)
    entry = Entry(
        timestamp_in_utc=_timestamp(local_time, timezone),
        utc_zone_of_timestamp=timezone,
        content=content,
        user_id=owner.id,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("entry.created", extra={"extra_data": {"entry_id": entry.id, "user_id": owner.id}})
    return entry


def update_entry(db: Session, entry: Entry, payload: dict[str, Any]) -> Entry:
    # ``userId`` is never read from the payload.
    changes: dict[str, str] = {}
    if "timezone" in payload or "localTime" in payload:
        timezone = _require(payload, "timezone")
        local_time = _require(payload, "localTime")
        changes["timestamp_in_utc"] = _timestamp(local_time, timezone)
        changes["utc_zone_of_timestamp"] = timezone
    if "content" in payload:
        changes["content"] = _require(payload, "content")
    for field, value in changes.items():
        setattr(entry, field, value)
    db.commit()
    db.refresh(entry)
    logger.info("entry.updated", extra={"extra_data": {"entry_id": entry.id, "user_id": entry.user_id}})
    return entry


def delete_entry(db: Session, entry: Entry) -> None:
    entry_id, user_id = entry.id, entry.user_id
    db.delete(entry)
    db.commit()
    logger.info("entry.deleted", extra={"extra_data": {"entry_id": entry_id, "user_id": user_id}})
