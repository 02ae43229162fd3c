"""
Process-wide SQLAlchemy engine for the recurring run.

The CLI and the scheduled handler initialize one engine from the configured
database URL; every worker of a fanned-out run then opens its own session
from the shared session factory. Tests usually skip this module and hand a
sessionmaker straight to the orchestrator.

Calling any accessor before init_engine_from_url() raises RuntimeError.
Driver errors (unreachable host, bad credentials) are not translated here;
the storage layer turns them into StorageUnavailableError.
"""

import atexit

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from budget_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

# Pool settings for server databases; SQLite ignores pooling arguments.
POOL_SIZE = 5
MAX_OVERFLOW = 5
POOL_RECYCLE_SECONDS = 1800


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Create the engine and session factory, replacing any previous pair."""
    global _engine, _session_factory

    url = make_url(database_url)
    # bare postgres:// URLs would otherwise select psycopg2
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+psycopg")
    options: dict = {"echo": echo}
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=POOL_RECYCLE_SECONDS,
        )

    reset_engine()
    _engine = create_engine(url, **options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def _require_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the process engine."""
    _require_engine()
    return _session_factory


def get_session() -> Session:
    """A fresh session; the caller owns commit and close."""
    return get_session_factory()()


def create_tables(engine: Engine | None = None) -> None:
    """Create missing tables. Existing tables are left alone."""
    from budget_kernel.db.base import Base
    import budget_kernel.models  # noqa: F401  (populates Base.metadata)

    Base.metadata.create_all(engine or _require_engine())


def reset_engine() -> None:
    """Dispose the process engine, if any, and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
