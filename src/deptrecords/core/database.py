"""Database connection and session management.

This module owns the SQLAlchemy engine (and its connection pool) and hands
out request-scoped sessions. Services never create engines themselves.
"""

from typing import Iterator

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from deptrecords.config import DATA_DIR, DATABASE_ECHO, DATABASE_URL
from deptrecords.models.base import Base
# Import models to ensure they are registered with Base.metadata
import deptrecords.models  # noqa: F401

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # Ensure data directory exists
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    # check_same_thread is ONLY valid for SQLite
    connect_args = {"check_same_thread": False}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    echo=DATABASE_ECHO,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create tables and unique indexes if they do not exist."""
    Base.metadata.create_all(bind=engine)


def get_session_factory() -> sessionmaker:
    """Dependency returning the session factory.

    Background tasks open their own sessions from this factory, since the
    request session is closed by the time they run.
    """
    return SessionLocal


def get_db(session_factory: sessionmaker = Depends(get_session_factory)) -> Iterator[Session]:
    """Dependency for getting a database session."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def is_unique_violation(error: IntegrityError) -> bool:
    """True when ``error`` comes from a unique index rather than another constraint."""
    original = error.orig
    if getattr(original, "pgcode", None) == "23505":
        return True
    message = str(original).lower()
    return "unique constraint" in message or "duplicate key" in message
