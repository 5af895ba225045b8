"""Database engine, session factory and read retry helper."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from saloony.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Base = declarative_base()


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine for ``database_url``; SQLite gets thread and pragma setup."""

    is_sqlite = database_url.startswith("sqlite")
    connect_args = kwargs.pop("connect_args", {})
    if is_sqlite:
        connect_args.setdefault("check_same_thread", False)  # required for SQLite + FastAPI
    else:
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_recycle", 300)

    engine = create_engine(database_url, connect_args=connect_args, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON;")
                cursor.execute("PRAGMA busy_timeout = 5000;")
            finally:
                cursor.close()

    return engine


engine = build_engine(get_settings().database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db(bind: Engine | None = None) -> None:
    """Create every table registered on ``Base``."""

    # models must be imported so their tables are registered on the metadata
    from saloony import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def run_read(
    session: Session,
    query: Callable[[Session], T],
    *,
    retries: int | None = None,
    delay: float = 0.1,
) -> T:
    """Run a read-only ``query``, retrying on transient connection failures.

    Only use this for reads; writes are never retried.
    """

    attempts = (get_settings().db_read_retries if retries is None else retries) + 1
    for attempt in range(1, attempts + 1):
        try:
            return query(session)
        except (OperationalError, DisconnectionError) as exc:
            session.rollback()
            if attempt >= attempts:
                logger.exception("Read query failed after %s attempts", attempt)
                raise
            logger.warning(
                "Transient database error on attempt %s/%s: %s", attempt, attempts, exc
            )
            time.sleep(delay * attempt)
    raise RuntimeError("unreachable")  # pragma: no cover
