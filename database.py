"""
SQLAlchemy database connection and session management.

This module provides:
- Database engine configuration (Azure SQL / MS SQL Server in production,
  SQLite for local runs and tests)
- Session factory for dependency injection
- Transaction helpers with bounded retries for transient connection faults

Usage:
     from database import get_session, run_in_transaction

     # In FastAPI routes:
     @router.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()

     # In jobs and scripts:
     promoted = run_in_transaction(reconcile_all)
"""
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_engine(url: str, echo: bool = False):
     """
     Create an engine for the given URL.

     SQLite gets a single shared connection (in-memory databases only live as
     long as their connection) and foreign key enforcement; every other backend
     gets a QueuePool sized from configuration.
     """
     if url.startswith("sqlite"):
          sqlite_engine = create_engine(
               url,
               connect_args={"check_same_thread": False},
               poolclass=StaticPool,
               echo=echo,
          )

          @event.listens_for(sqlite_engine, "connect")
          def _configure_sqlite(dbapi_connection, _record):
               cursor = dbapi_connection.cursor()
               cursor.execute("PRAGMA foreign_keys=ON")
               cursor.close()
               # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
               dbapi_connection.isolation_level = None

          @event.listens_for(sqlite_engine, "begin")
          def _begin_sqlite(conn):
               conn.exec_driver_sql("BEGIN")

          return sqlite_engine

     return create_engine(
          url,
          poolclass=QueuePool,
          pool_size=config.DB_POOL_SIZE,
          max_overflow=config.DB_MAX_OVERFLOW,
          pool_timeout=config.DB_POOL_TIMEOUT,
          pool_recycle=config.DB_POOL_RECYCLE,  # Recycle connections after 30 minutes
          pool_pre_ping=True,  # Replace connections dropped by the server
          echo=echo,
     )


# Create SQLAlchemy engine
engine = build_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

# Session factory
SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     The whole request is one transaction: committed when the route returns,
     rolled back when it raises (including ledger business errors).

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


@contextmanager
def get_session_context(factory: Callable[[], Session] = None) -> Generator[Session, None, None]:
     """
     Context manager for database sessions (for use outside FastAPI routes).

     Usage:
          with get_session_context() as db:
               blocks = db.query(SessionBlock).all()

     Yields:
          Session: SQLAlchemy database session
     """
     session = (factory or SessionLocal)()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def run_in_transaction(
     fn: Callable[..., T],
     *args: Any,
     session_factory: Callable[[], Session] = None,
     attempts: int = None,
     backoff: float = None,
     **kwargs: Any
) -> T:
     """
     Run ``fn(db, *args, **kwargs)`` as one unit of work.

     The unit is retried from scratch on OperationalError (lost connection,
     deadlock victim, lock timeout) with exponential backoff. Anything else,
     business errors included, propagates on the first failure.

     Returns:
          Whatever ``fn`` returns, after the transaction has committed.
     """
     attempts = attempts if attempts is not None else config.DB_RETRY_ATTEMPTS
     backoff = backoff if backoff is not None else config.DB_RETRY_BACKOFF
     attempts = max(1, attempts)

     for attempt in range(1, attempts + 1):
          try:
               with get_session_context(session_factory) as db:
                    return fn(db, *args, **kwargs)
          except OperationalError as exc:
               if attempt == attempts:
                    logger.error("Giving up after %s attempts: %s", attempts, exc)
                    raise
               delay = backoff * (2 ** (attempt - 1))
               logger.warning(
                    "Transient database error (attempt %s/%s), retrying in %.2fs: %s",
                    attempt, attempts, delay, exc,
               )
               time.sleep(delay)


def init_db() -> None:
     """
     Initialize database tables.

     Creates all tables defined in the models if they don't exist.
     For production, use Alembic migrations instead.
     """
     from models import Base
     Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
     """
     Test database connectivity.

     Returns:
          bool: True if connection successful, False otherwise
     """
     try:
          with engine.connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except OperationalError as e:
          logger.error("Database connection failed: %s", e)
          return False
