"""SQLAlchemy model for dated journal entries."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text

from ..db.session import Base


class Entry(Base):
    __tablename__ = "entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    # Canonical "YYYY-MM-DDTHH:MM:SS.mmmZ", see journal.services.timecodec.format_utc
    timestamp_in_utc = Column(Text, nullable=False)
    # "+HH:MM"/"-HH:MM" the entry was written in; display only
    utc_zone_of_timestamp = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)


__all__ = ["Entry"]
