"""
Module: timesheet_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine and session factory,
    and the ``session_scope`` unit of work used by scripts and entrypoints.
    Module services receive a ``Session`` and never call into this module.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from domain/, services, or modules.

Invariants enforced:
    - Server databases (PostgreSQL) run at READ COMMITTED behind a
      pre-pinging QueuePool.  Monthly summary loads add FOR UPDATE and the
      summary's version column catches lost updates.
    - Every SQLite connection enables foreign keys, so deleting a summary
      cascades to its records exactly as on PostgreSQL.
    - In-memory SQLite shares one connection (StaticPool); file SQLite waits
      ``pool_timeout`` seconds on a locked database before failing.

Failure modes:
    - RuntimeError from get_engine/get_session/get_session_factory before
      init_engine_from_url() has run.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from timesheet_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_engine(url, echo: bool, busy_timeout: int) -> Engine:
    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": busy_timeout},
        poolclass=StaticPool if in_memory else None,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create an engine for ``database_url`` without touching module state.

    Tests build their own engines with this; pool arguments only apply to
    server databases.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return _sqlite_engine(url, echo, pool_timeout)

    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Build the process-wide engine and session factory.

    ``pool_options`` are passed to ``build_engine``.  Calling again replaces
    the previous engine without disposing it; use ``reset_engine()`` first
    when the old one should be closed.
    """
    global _engine, _SessionFactory

    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "database": _engine.url.render_as_string(hide_password=True),
            "echo": echo,
        },
    )
    return _engine


def _require_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session from the process-wide factory."""
    return _require_factory()()


def get_session_factory() -> sessionmaker[Session]:
    """The factory itself, for threads that each need their own session."""
    return _require_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit when the body returns, roll back and re-raise
    when it raises.  The session is closed either way.

    Usage:
        with session_scope() as session:
            HolidayCategoryService(session).seed_defaults(actor_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """
    Create every table registered on Base.metadata.

    Only tables whose ORM modules have been imported exist in the metadata;
    use ``timesheet_modules._orm_registry.create_all_tables()`` for the
    complete schema.
    """
    from timesheet_kernel.db.base import Base

    Base.metadata.create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    from timesheet_kernel.db.base import Base

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the process-wide engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
