"""
Module: elara_kernel.db.engine
Responsibility: SQLAlchemy engine construction and schema management.  This
    is the single point of database connection configuration for the
    workflow kernel.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, or domain/ (except for
    create_tables, which imports models so their tables register).

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED with explicit row-level locking
      (SELECT ... FOR UPDATE) on the cascade's parent rows.
    - SQLite is accepted for tests and local work; foreign keys are turned on
      for every SQLite connection.

Sessions are built by the caller (``sessionmaker(bind=engine,
expire_on_commit=False)``) so DTOs can be read after the transaction closes.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from elara_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
) -> Engine:
    """
    Create an Engine for ``database_url``.

    PostgreSQL gets a sized QueuePool at READ COMMITTED; SQLite gets the
    driver's default pool and cross-thread connections.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": pool_timeout},
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            isolation_level="READ COMMITTED",
        )

    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "echo": echo},
    )
    return engine


def create_tables(engine: Engine) -> None:
    """
    Create all tables defined in the models.

    Imports elara_kernel.models so Base.metadata holds every table.
    """
    from elara_kernel.db.base import Base
    import elara_kernel.models  # noqa: F401

    Base.metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    """Drop all tables. Primarily for testing."""
    from elara_kernel.db.base import Base
    import elara_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine)
