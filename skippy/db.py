from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from skippy.models import Base

log = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"


def default_db_url() -> str:
    """Resolve the database URL from ``SKIPPY_DB_PATH`` or the package data dir."""
    db_path = Path(os.environ.get("SKIPPY_DB_PATH") or DATA_DIR / "skippy.db")
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"


def _enable_foreign_keys(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


class Database:
    """Storage handle: one engine plus its session factory.

    Create one per process (API lifespan, MCP lifespan, tests) and pass it to
    whatever needs persistence.  Sessions are acquired per unit of work with
    :meth:`session_scope` and always closed.
    """

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        if engine is None:
            engine = create_engine(url or default_db_url(), connect_args={"check_same_thread": False})
        self.engine = engine
        event.listen(self.engine, "connect", _enable_foreign_keys)
        Base.metadata.create_all(self.engine)
        self._factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        log.info("Database ready at %s", self.engine.url)

    def get_session(self) -> Session:
        return self._factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Context manager providing a transactional session scope.

        Usage (MCP server, scripts, etc.)::

            with database.session_scope() as session:
                ...
        """
        session = self.get_session()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def session_generator(self) -> Generator[Session, None, None]:
        """Generator-based session suitable for FastAPI ``Depends()``."""
        with self.session_scope() as session:
            yield session

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def dispose(self) -> None:
        self.engine.dispose()
