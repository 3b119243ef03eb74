"""Moodtrack - Database engine and session management.

SQLAlchemy sync engine/session factory. SQLite by default; any SQLAlchemy
URL (e.g. mysql+pymysql://...) is accepted.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from app.config import DB_PATH, SQLITE_BUSY_TIMEOUT_SEC
from app.models import Base


def get_database_url(db_path: str | Path | None = None) -> str:
    """Get SQLite database URL.

    Args:
        db_path: Optional path override. Defaults to config.DB_PATH.

    Returns:
        SQLite connection URL string.
    """
    path = db_path if db_path is not None else DB_PATH
    return f"sqlite:///{path}"


def _configure_sqlite(engine: Engine) -> None:
    """Make pysqlite honour SAVEPOINT and foreign keys.

    pysqlite defers BEGIN on its own, which breaks SAVEPOINT. The driver's
    transaction handling is switched off and SQLAlchemy emits BEGIN itself.
    BEGIN IMMEDIATE takes the write lock up front, so concurrent writers
    wait on the busy timeout instead of deadlocking on a lock upgrade.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(database_url: str | None = None, echo: bool = False) -> Engine:
    """Create SQLAlchemy engine.

    For file-backed SQLite URLs the parent directory is created.

    Args:
        database_url: SQLAlchemy URL. Defaults to the SQLite file at config.DB_PATH.
        echo: If True, log all SQL statements.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(database_url or get_database_url())

    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        url,
        echo=echo,
        # check_same_thread=False: FastAPI runs sync endpoints in a threadpool.
        # Sessions are still one per unit of work and never shared across threads.
        # timeout: seconds a writer waits for the lock held by another transaction.
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SEC},
    )
    _configure_sqlite(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        Configured sessionmaker.
    """
    # - autoflush=False: explicit flush control inside the ingest transaction
    # - expire_on_commit=False: results stay readable after the session closes
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(database_url: str | None = None, echo: bool = False) -> tuple[Engine, sessionmaker]:
    """Initialize the database: create engine, session factory, and all tables.

    This is idempotent - safe to call multiple times.

    Args:
        database_url: Optional SQLAlchemy URL override.
        echo: If True, log all SQL statements.

    Returns:
        Tuple of (engine, SessionFactory).
    """
    engine = create_db_engine(database_url, echo=echo)
    SessionFactory = create_session_factory(engine)

    # Create all tables (idempotent via checkfirst=True default)
    Base.metadata.create_all(engine)

    return engine, SessionFactory
