"""Database session management with connection pooling"""

from typing import Generator, Optional
from fastapi import Query
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from billflow.config import settings


def enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let pysqlite honour SAVEPOINT, which per-bill settlement relies on.

    pysqlite's own transaction handling swallows BEGIN; the driver is put in
    autocommit mode and SQLAlchemy emits BEGIN itself.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        enable_sqlite_savepoints(engine)
        return engine

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
        connect_args={"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"},
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def open_session(namespace: Optional[str] = None) -> Session:
    """
    Open a session, optionally routed to a namespace (schema).

    The namespace is opaque here: it only rewrites the schema of every table.
    """
    if namespace:
        return SessionLocal(bind=engine.execution_options(schema_translate_map={None: namespace}))
    return SessionLocal()


def get_db(
    namespace: Optional[str] = Query(None, description="Data set to operate on"),
) -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    db = open_session(namespace)
    try:
        yield db
    finally:
        db.close()
