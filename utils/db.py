"""
Transaction helpers shared by every mutating service.

- atomic(): one commit-or-rollback unit of work on the Flask-SQLAlchemy session
- translate_storage_error(): maps driver errors onto the kanban error taxonomy
- retry_on_conflict: tenacity retry for retryable ConcurrencyConflictError
- configure_sqlite_engine(): BEGIN IMMEDIATE + foreign keys for SQLite engines
"""

import logging
from contextlib import contextmanager

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError, DBAPIError
from tenacity import retry, retry_if_exception, wait_exponential, before_sleep_log

from models import db
from services.errors import KanbanError, ConcurrencyConflictError, StorageFailureError

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT_RETRIES = 3

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_PGCODES = {"40001", "40P01", "55P03"}
SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def translate_storage_error(exc: SQLAlchemyError) -> KanbanError:
    """Map a SQLAlchemy/DBAPI error to ConcurrencyConflictError or StorageFailureError."""
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None)
    if pgcode in RETRYABLE_PGCODES:
        return ConcurrencyConflictError(
            "Concurrent modification detected, please retry",
            details={'pgcode': pgcode},
        )

    if isinstance(exc, DBAPIError):
        message = str(orig or exc).lower()
        if any(marker in message for marker in SQLITE_LOCK_MESSAGES):
            return ConcurrencyConflictError(
                "Storage is busy with a concurrent write, please retry",
                details={'reason': 'locked'},
            )

    return StorageFailureError(
        "Storage operation failed",
        details={'reason': exc.__class__.__name__},
    )


@contextmanager
def atomic(session=None):
    """
    Run a block as a single transaction.

    Commits when the block exits cleanly. On any exception the whole
    transaction is rolled back; SQLAlchemy errors are re-raised as the
    matching KanbanError.
    """
    session = session or db.session
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        translated = translate_storage_error(e)
        logger.warning(f"[TX] Rolled back: {translated.code} ({e.__class__.__name__})")
        raise translated from e
    except Exception:
        session.rollback()
        raise


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ConcurrencyConflictError) and exc.retryable


def _max_attempts() -> int:
    if has_app_context():
        return int(current_app.config.get("KANBAN_CONFLICT_RETRIES", DEFAULT_CONFLICT_RETRIES))
    return DEFAULT_CONFLICT_RETRIES


def _stop_after_configured_attempts(retry_state) -> bool:
    return retry_state.attempt_number >= max(1, _max_attempts())


retry_on_conflict = retry(
    retry=retry_if_exception(_is_retryable),
    stop=_stop_after_configured_attempts,
    wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def configure_sqlite_engine(engine, begin_immediate: bool = True):
    """
    Turn on foreign keys and, optionally, make transactions take the write lock up front.

    pysqlite defers BEGIN until the first DML statement, so two readers can
    both read a position and then race to write it. Emitting BEGIN IMMEDIATE
    serializes writers for the whole database file. Single-connection
    in-memory databases have no second writer and leave it off.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        if begin_immediate:
            # let SQLAlchemy's begin event own the transaction boundaries
            dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    if begin_immediate:
        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    logger.info(f"SQLite engine configured (begin_immediate={begin_immediate})")