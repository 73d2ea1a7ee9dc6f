# trashcan/database.py
"""
SQLAlchemy engine and session factory for the SQL node store.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from trashcan.config import get_settings

DATABASE_URL = get_settings().DATABASE_URL

# Railway-style postgresql:// URLs need the psycopg2 driver spelled out
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg2://", 1)


def make_engine(url: str) -> Engine:
    """Create an engine; SQLite connections may be shared across threads."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, echo=False, connect_args=connect_args)


engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """
    Import models and create tables if they don't exist.
    """
    from trashcan import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
