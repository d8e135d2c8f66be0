"""SQLAlchemy model for journal owners."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class User(Base):
    """A registered user; ``username`` and ``email`` are unique after trimming."""

    __tablename__ = "users"
    # AUTOINCREMENT keeps ids of deleted users from being handed out again.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    username = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    # Stored verbatim; compared byte-for-byte by journal.core.security.
    password = Column(Text, nullable=False)


__all__ = ["User"]
