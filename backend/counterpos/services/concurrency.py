# Overview: Transaction helpers with optimistic-conflict retry for sale and payment writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .errors import ConflictAbortError, PersistenceError

# Failures that mean "someone else wrote first": the whole body is re-run
# against fresh reads.
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    SQLite has no row locks; BEGIN IMMEDIATE serializes writers so the
    read phase of a transaction cannot interleave with another writer.
    Rows loaded before the lock are expired so the body re-reads them.
    """
    db.session.expire_all()
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    func must be re-entrant: every attempt starts from a rolled-back
    session and must re-read everything it uses. Business errors raised by
    func are not retried; the session is rolled back and the error
    propagates unchanged.

    Raises ConflictAbortError once attempts are exhausted.
    """
    if attempts is None:
        attempts = current_app.config.get("TRANSACTION_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TRANSACTION_BACKOFF_BASE", 0.1)

    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error(
                    "Transaction aborted after %d attempts: %s", attempts, exc.__class__.__name__
                )
                raise ConflictAbortError(
                    "The operation conflicted with another update. Please retry.",
                    details={"attempts": attempts, "cause": exc.__class__.__name__},
                ) from exc
            current_app.logger.warning(
                "Transaction conflict (%s), retry %d/%d",
                exc.__class__.__name__, attempt + 1, attempts - 1,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Transaction failed")
            raise PersistenceError(
                "The operation could not be saved.",
                details={"cause": exc.__class__.__name__},
            ) from exc
        except Exception:
            db.session.rollback()
            raise
