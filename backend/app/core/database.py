"""Database engine and session management.

The engine is owned by a ``Database`` instance that the application factory
builds at startup and disposes at shutdown. Request handlers get a session
through the ``get_db`` dependency, which reads the instance off ``app.state``.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """Owns one SQLAlchemy engine and its session factory."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        if url.startswith("sqlite"):
            kwargs: dict = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
                # One shared connection, otherwise every checkout sees an empty DB
                kwargs["poolclass"] = StaticPool
            self.engine: Engine = create_engine(url, echo=echo, **kwargs)
            _enable_sqlite_savepoints(self.engine)
        else:
            self.engine = create_engine(url, echo=echo, pool_pre_ping=True)

        self.session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False
        )

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        """Create every mapped table. Production schemas come from Alembic."""
        import backend.app.models.audit  # noqa: F401
        import backend.app.models.user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        logger.info("Disposing database engine for %s", self.engine.url.render_as_string())
        self.engine.dispose()


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT behaves under pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
