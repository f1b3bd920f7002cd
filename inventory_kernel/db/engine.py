"""
Module: inventory_kernel.db.engine
Responsibility: The process-wide engine and session factory, and the
    session_scope() helper for callers that own their transaction.
Architecture position: Kernel > DB.  Imports db/base.py and, for
    create_tables/drop_tables only, the models package.

Invariants enforced:
    - PostgreSQL (psycopg2) is the production backend, run at READ COMMITTED
      with QueuePool and pre-ping.  Operation undo relies on its
      SELECT ... FOR UPDATE.
    - SQLite URLs are accepted for tests and local runs; they use a single
      static connection so an in-memory database survives across sessions.
    - Sessions never expire attributes on commit; services hand ORM-backed
      values to post-commit notifications.

Failure modes:
    - RuntimeError from any accessor called before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from inventory_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


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
    Create the engine and session factory every later call uses.

    Calling it again replaces both; the previous engine is not disposed
    (use reset_engine() for that).  Pool arguments apply to PostgreSQL only.
    """
    global _engine, _SessionFactory

    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": dialect,
            "pool_size": pool_size if dialect != "sqlite" else 1,
            "echo": echo,
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    """A new session; the caller closes it."""
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on error, always close.

    For composing several services into one transaction::

        with session_scope() as session:
            items = ItemService(session, auto_commit=False)
            items.create_item(ctx, data)
            items.create_item(ctx, other)
        items.run_deferred_notifications()
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create the schema, item, audit log and operation tables if missing."""
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401  (registers tables)

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every inventory table. Tests only."""
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def _atexit_dispose():
    if _engine is not None:
        try:
            _engine.dispose()
        except SQLAlchemyError:
            logger.debug("engine_dispose_failed", exc_info=True)


atexit.register(_atexit_dispose)
