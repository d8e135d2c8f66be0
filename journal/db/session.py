"""SQLAlchemy engine and session helpers.

The application never reaches for a module-level engine: ``create_app``
builds (or is handed) a session factory and parks it on ``app.state`` so
each process, and each test, owns its store.
"""

from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# ``Base`` is the parent class for every SQLAlchemy model defined in journal/models.
Base = declarative_base()


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite connections may be shared by worker threads."""

    if not url.startswith("sqlite"):
        return create_engine(url)
    connect_args = {"check_same_thread": False}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database.
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


# SQLite INTEGER PRIMARY KEY is a signed 64-bit rowid.
MAX_ROW_ID = 2**63 - 1


def fits_row_id(value: int) -> bool:
    """Whether ``value`` can be bound as an id without overflowing the driver."""

    return -MAX_ROW_ID - 1 <= value <= MAX_ROW_ID
