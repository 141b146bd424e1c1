"""Database session management.

One ``Database`` (engine + connection pool + session factory) is built per
process by ``create_app`` and hung on ``app.state.db``. Routes get a session
through ``get_db``; nothing imports a module-level engine.
"""
import logging
from pathlib import Path
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.models.base import Base

logger = logging.getLogger(__name__)


def resolve_db_url(db_url: str) -> str:
    """
    Resolve relative SQLite database URLs to absolute paths (Windows-safe).
    sqlite:///./campus.db is resolved against the project root; other URLs pass through.
    """
    if not db_url.startswith("sqlite") or ":///./" not in db_url:
        return db_url
    prefix, relative_path = db_url.split(":///./", 1)
    project_root = Path(__file__).resolve().parent.parent.parent
    absolute_path = (project_root / relative_path).resolve()
    return f"{prefix}:///{absolute_path.as_posix()}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine (connection pool) and hands out sessions."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = resolve_db_url(url)
        connect_args = {}
        if self.url.startswith("sqlite"):
            # Sessions may be used from FastAPI's threadpool
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(
            self.url,
            pool_pre_ping=True,  # Verify connections before using
            echo=echo,
            connect_args=connect_args,
        )
        if self.url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=True, bind=self.engine,
        )

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        """Create missing tables (migrations handle this in production)."""
        Base.metadata.create_all(bind=self.engine)

    def check_connection(self) -> bool:
        """Check if database connection is available."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database connectivity check failed", exc_info=True)
            return False

    def dispose(self) -> None:
        """Close every pooled connection (process shutdown)."""
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency for FastAPI routes to get database session."""
    db: Optional[Session] = None
    try:
        db = get_database(request).session()
        yield db
    finally:
        if db is not None:
            db.close()
