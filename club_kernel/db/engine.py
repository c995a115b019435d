"""
Module: club_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  This is the single point of store
    connection configuration for the entire system.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or outer layers
    (except create_tables, which imports the module ORM registry).

Invariants enforced:
    - PostgreSQL is the production backend: READ COMMITTED isolation, with
      guarded UPDATEs / SELECT ... FOR UPDATE where stronger isolation is
      needed.  statement_timeout and lock_timeout bound every call.
    - SQLite is supported for tests and single-node use.  Every transaction
      starts with BEGIN IMMEDIATE, which serialises writers and makes
      SAVEPOINT work under pysqlite.  The busy timeout bounds lock waits.
    - No store call blocks indefinitely: pool, statement, lock and busy
      timeouts are all finite.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory called before
      init_engine_from_url().
    - StoreUnavailableError raised by session_scope() when the store times out
      or the connection drops.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from club_kernel.exceptions import StoreUnavailableError
from club_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    store_timeout_seconds: float = 5.0,
) -> Engine:
    """
    Create an Engine for ``database_url`` without touching module state.

    Used directly by tests that need a second, independent store (threaded
    concurrency tests against a file-backed SQLite database).

    Args:
        database_url: SQLAlchemy URL (postgresql://... or sqlite://...).
        echo: If True, log all SQL statements.
        pool_size: PostgreSQL pool size.
        max_overflow: PostgreSQL connections beyond pool_size.
        pool_timeout: Seconds to wait for a pooled connection before giving up.
        pool_recycle: Seconds after which a connection is recycled.
        store_timeout_seconds: Upper bound for a single statement or lock wait.
    """
    if database_url.startswith("sqlite"):
        return _build_sqlite_engine(database_url, echo, store_timeout_seconds)

    timeout_ms = int(store_timeout_seconds * 1000)
    return create_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
        connect_args={
            "options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
        },
    )


def _build_sqlite_engine(
    database_url: str, echo: bool, store_timeout_seconds: float
) -> Engine:
    in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
    kwargs: dict = {
        "echo": echo,
        "connect_args": {
            "timeout": store_timeout_seconds,
            "check_same_thread": False,
        },
    }
    if in_memory:
        # One shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself (pysqlite defers it otherwise)
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    store_timeout_seconds: float = 5.0,
) -> Engine:
    """
    Initialize the module-level engine and session factory.

    Postconditions: All subsequent get_engine/get_session calls use this engine.
        A second call overwrites the first.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    _engine = build_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        store_timeout_seconds=store_timeout_seconds,
    )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": pool_size,
            "store_timeout_seconds": store_timeout_seconds,
            "echo": echo,
        },
    )

    return _engine


def init_engine_from_config(config, echo: bool = False) -> Engine:
    """
    Initialize the module-level engine from an organisation config.

    ``config`` is any object with ``database_url`` and
    ``store_timeout_seconds`` (normally a ``club_config.ClubConfig``).
    """
    return init_engine_from_url(
        config.database_url,
        echo=echo,
        store_timeout_seconds=config.store_timeout_seconds,
    )


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Useful for multi-threaded scenarios where each thread needs its own session.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def is_transient_store_error(exc: BaseException) -> bool:
    """True for timeouts, lock waits and dropped connections."""
    if isinstance(exc, PoolTimeoutError):
        return True
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@contextmanager
def translate_store_errors(session: Session, operation: str) -> Generator[None, None, None]:
    """
    Re-raise transient store failures inside ``operation`` as StoreUnavailableError.

    Read paths run inside the caller's transaction and never commit.  On a
    transient failure the session is rolled back so the caller can reuse
    it; every other exception propagates unchanged.
    """
    try:
        yield
    except Exception as exc:
        if not is_transient_store_error(exc):
            raise
        session.rollback()
        logger.error("store_unavailable", extra={"operation": operation})
        raise StoreUnavailableError(operation, str(exc)) from exc


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  Transient store
        failures are re-raised as StoreUnavailableError; everything else is
        re-raised unchanged.

    Usage:
        with session_scope() as session:
            session.add(entity)
    """
    session = get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception as exc:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        if is_transient_store_error(exc):
            raise StoreUnavailableError("session_scope", str(exc)) from exc
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create all tables defined in the models.

    Preconditions: Engine must be initialized via init_engine_from_url().
    Postconditions: All tables exist in the store.
    """
    from club_kernel.db.base import Base
    from club_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from club_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)

