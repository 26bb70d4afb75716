"""
Database engine configuration.

The attempt log lives in whatever database the host application uses.
SQLite files get their directory created on first use, an in-memory SQLite
URL gets a single shared connection so every session sees the same tables,
and anything else gets a small pre-pinged pool.
"""

from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from loginguard.config import get_settings
from loginguard.core import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def _ensure_sqlite_directory(database: str | None) -> None:
    if not database or database == ":memory:":
        return
    db_dir = Path(database).parent
    if not db_dir.exists():
        db_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created database directory", data={"path": str(db_dir)})


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Build an engine for ``database_url`` with per-dialect pool settings."""
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            return create_engine(
                url, connect_args=connect_args, poolclass=StaticPool, echo=echo
            )
        _ensure_sqlite_directory(url.database)
        return create_engine(
            url, connect_args=connect_args, echo=echo, pool_pre_ping=True
        )

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def get_engine() -> Engine:
    """
    Get or create the application engine.

    Returns cached engine instance, creating it from settings on first call.
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(settings.database_url, echo=settings.debug)
        logger.info(
            "Database engine created",
            data={"dialect": _engine.dialect.name, "debug": settings.debug},
        )

    return _engine


def verify_database_connection(engine: Engine | None = None) -> bool:
    """
    Check that the database answers and the attempt table exists.

    Returns:
        True if both hold, False otherwise.
    """
    try:
        engine = engine or get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1 FROM login_attempts LIMIT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error("Database check failed", data={"error": str(e)})
        return False


def dispose_engine() -> None:
    """Dispose of the engine and release all connections."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")
