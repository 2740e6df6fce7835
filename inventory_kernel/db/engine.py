"""
Module: inventory_kernel.db.engine
Responsibility: The one place the audit database is configured: engine and
    session factory, unit-of-work scope, schema creation for tests and
    first deployment.
Architecture position: Kernel > DB.  Imports db/base.py and
    db/immutability.py; create_tables imports the models package so every
    table is registered on Base.metadata.

Invariants enforced:
    - PostgreSQL in production (pooled, pre-ping, READ COMMITTED so the
      row lock taken by RoundService on a reference serializes concurrent
      counts).  SQLite URLs share one in-memory connection (StaticPool).
    - Append-only listeners for count events are registered whenever an
      engine is initialized.
    - session_scope() commits on success, rolls back on any exception.

Failure modes:
    - RuntimeError from get_engine/get_session/get_session_factory before
      an engine was initialized.
    - RuntimeError from init_engine_from_env when no URL is configured.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.logging_config import LogContext, configure_logging, get_logger

logger = get_logger("db.engine")

DATABASE_URL_ENV = "INVENTORY_DATABASE_URL"

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _build_engine(
    database_url: str,
    echo: bool,
    pool_size: int,
    max_overflow: int,
) -> Engine:
    if make_url(database_url).get_backend_name() == "sqlite":
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
) -> Engine:
    """Create the engine and session factory, replacing any previous ones.

    Args:
        database_url: postgresql://... in production, sqlite:// in tests.
        echo: Log every SQL statement.
        pool_size, max_overflow: Pool sizing (ignored for SQLite).
    """
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = _build_engine(database_url, echo, pool_size, max_overflow)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)
    register_immutability_listeners()

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "database": make_url(database_url).render_as_string(hide_password=True),
        },
    )
    return _engine


def init_engine_from_env(**kwargs) -> Engine:
    """``init_engine_from_url`` with $INVENTORY_DATABASE_URL."""
    url = os.environ.get(DATABASE_URL_ENV)
    if not url:
        raise RuntimeError(f"{DATABASE_URL_ENV} is not set")
    return init_engine_from_url(url, **kwargs)


def _factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    return _factory()()


def get_session_factory() -> sessionmaker[Session]:
    return _factory()


@contextmanager
def session_scope(actor_id: str | None = None) -> Generator[Session, None, None]:
    """
    One unit of work, optionally attributed to ``actor_id`` in the logs.

    Usage:
        with session_scope(actor_id=user_id) as session:
            RoundService(session, agrees=policy).record_count(...)
    """
    session = get_session()
    with LogContext.bind(actor_id=actor_id):
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


def create_tables() -> None:
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401  (registers mappers)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every audit table.  Tests only."""
    from inventory_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None
