# Overview: Transaction boundaries, row locking, and retry policy for inventory workflows.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ConflictError

"""
Inventory Transaction Invariants (authoritative)

- Every multi-step workflow (purchase, sale, adjustment, session open/close)
  runs inside run_in_transaction(): one DB transaction, committed once.
- Any exception rolls back every write performed so far in the operation.
- Lot reads that precede lot writes happen under a write lock:
    * SQLite: BEGIN IMMEDIATE takes the database write lock up front
    * Other DBs: SELECT ... FOR UPDATE on the ingredient row and its lots
- Lock waits are bounded (DB_LOCK_TIMEOUT_SECONDS); lock failures are
  retried and finally surface as a retryable ConflictError.
"""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Acquire the SQLite write lock before the first read of the operation.

    No-op on other dialects (row locks cover them) and when the connection
    already holds an open transaction.
    """
    if db.engine.dialect.name != "sqlite":
        return
    connection = db.session.connection()
    dbapi_connection = connection.connection.dbapi_connection
    if not dbapi_connection.in_transaction:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). When retries are exhausted a
    retryable ConflictError is raised instead of the driver error.
    """
    if attempts is None:
        attempts = current_app.config.get("TX_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TX_RETRY_BACKOFF_SECONDS", 0.1)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning("Giving up after %d attempts: %s", attempts, exc)
                raise ConflictError(
                    "Inventory is busy; please retry",
                    details={"attempts": attempts},
                    retryable=True,
                ) from exc
            current_app.logger.warning(
                "Concurrency conflict (attempt %d/%d), retrying: %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))


def run_in_transaction(func, *, attempts: int | None = None):
    """
    Run `func` as one atomic unit of work and commit it.

    `func` must not commit. Business errors roll back and propagate
    unchanged; unique-constraint races become ConflictError.
    """
    def _op():
        begin_write_transaction()
        try:
            result = func()
            db.session.commit()
        except (OperationalError, StaleDataError):
            raise
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(
                "Write conflicts with existing data",
                details={"reason": str(exc.orig)},
            ) from exc
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_op, attempts=attempts)
