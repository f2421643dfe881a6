"""
Module: requisition_kernel.db.engine
Responsibility: build the one SQLAlchemy engine the process uses, hand out
    sessions bound to it, and wrap units of work in commit/rollback scopes.
Architecture position: Kernel > DB.  Imports nothing from services/,
    selectors/ or domain/.  ``create_tables`` and ``drop_tables`` import the
    models package lazily so every table is registered on ``Base.metadata``.

Connection rules:
    - PostgreSQL: READ COMMITTED over a pre-pinging QueuePool.  Anything
      stronger is done with row locks (FOR UPDATE) and compare-and-set
      updates on the requisition version column.
    - SQLite: in-memory URLs share a single connection (StaticPool), and
      SQLAlchemy issues BEGIN itself so nested SAVEPOINTs behave.

Calling any accessor before ``init_engine_from_url`` raises RuntimeError.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from requisition_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_READY = "Database not initialized; call init_engine_from_url() first."

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_engine(url: URL, echo: bool) -> Engine:
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)

    # pysqlite defers BEGIN and commits on its own, which defeats SAVEPOINT.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_conn, _record):
        dbapi_conn.isolation_level = None
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def _server_engine(url: URL, echo: bool, **pool_options) -> Engine:
    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        isolation_level="READ COMMITTED",
        **pool_options,
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process engine and its session factory.

    Calling it again replaces both.  Pool arguments only apply to server
    databases; SQLite ignores them.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    backend = url.get_backend_name()
    if backend == "sqlite":
        _engine = _sqlite_engine(url, echo)
    else:
        _engine = _server_engine(
            url,
            echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "database_ready",
        extra={
            "backend": backend,
            "pooled": backend != "sqlite",
            "echo": echo,
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for callers that need sessions of their own, like the audit log."""
    if _session_factory is None:
        raise RuntimeError(_NOT_READY)
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Run a block as one unit of work.

    Commits when the block finishes, rolls back and re-raises when it
    raises, and always closes the session::

        with session_scope() as session:
            session.add(budget)
    """
    unit = get_session()
    try:
        yield unit
        unit.commit()
        logger.debug("unit_of_work_committed")
    except Exception:
        unit.rollback()
        logger.warning("unit_of_work_rolled_back", exc_info=True)
        raise
    finally:
        unit.close()


def _metadata():
    from requisition_kernel.db.base import Base
    import requisition_kernel.models  # noqa: F401  (registers every table)

    return Base.metadata


def create_tables() -> None:
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    """Drop every kernel table.  Test and local use only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@atexit.register
def _release_connections() -> None:
    if _engine is not None:
        _engine.dispose()
