"""SQLAlchemy engine, session factory and declarative base."""
import logging
import uuid
from collections.abc import Generator
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from anondo.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all models."""

    pass


def _make_engine(url: str):
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        install_sqlite_pragmas(engine)
        return engine
    return create_engine(url, pool_pre_ping=True)


def install_sqlite_pragmas(engine) -> None:
    """Turn on foreign keys so ON DELETE CASCADE works under SQLite."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = _make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables (SQLite dev mode only; Alembic owns real schemas)."""
    import anondo.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created at %s", engine.url.render_as_string(hide_password=True))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())
