"""
Supermarket Storefront - Database Configuration
================================================
Engine, SessionLocal, Base, and get_db dependency.
All models across all modules inherit from this Base.

Checkout runs on LockingSessionLocal. On PostgreSQL that is the same
engine (row locks come from SELECT ... FOR UPDATE). SQLite has no row
locks, so those sessions open with BEGIN IMMEDIATE and writers queue for
the whole database instead.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config.settings import DATABASE_URL, DB_LOCK_TIMEOUT_MS, SQLITE_BUSY_TIMEOUT

IMMEDIATE_OPTION = "sqlite_begin_immediate"


def _install_sqlite_locking(engine: Engine):
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite's implicit one
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(IMMEDIATE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def _install_pg_lock_timeout(engine: Engine, lock_timeout_ms: int):
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET lock_timeout = {int(lock_timeout_ms)}")
        cursor.close()
        dbapi_connection.commit()


def build_engine(url: str, busy_timeout: float = None) -> Engine:
    """Create an engine with the locking discipline checkout relies on."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": busy_timeout or SQLITE_BUSY_TIMEOUT},
        )
        _install_sqlite_locking(engine)
        return engine

    engine = create_engine(
        url,
        pool_size=20,
        max_overflow=40,
        pool_timeout=30,
        pool_recycle=1800,  # Refresh connections every 30 minutes
    )
    if engine.dialect.name == "postgresql" and DB_LOCK_TIMEOUT_MS > 0:
        _install_pg_lock_timeout(engine, DB_LOCK_TIMEOUT_MS)
    return engine


def locking_sessionmaker(engine: Engine) -> sessionmaker:
    """Sessions for transactions that must hold their locks from the first statement."""
    return sessionmaker(
        autocommit=False, autoflush=False,
        bind=engine.execution_options(**{IMMEDIATE_OPTION: True}),
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
LockingSessionLocal = locking_sessionmaker(engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a database session, auto-closes after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
