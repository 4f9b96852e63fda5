# Overview: Service-layer helpers for concurrency; row locking, retries and commit error mapping.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, UnavailableError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute an atomic DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). `func` must do all of its reads and
    writes and its commit itself, so that a retry starts from fresh state.

    Exhausted retries surface as UnavailableError / ConflictError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise UnavailableError("Database is unavailable, try again later") from exc
        except StaleDataError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConflictError("Record was modified concurrently, reload and retry") from exc
        time.sleep(backoff_base * (2 ** attempt))


def commit_or_conflict(
    message: str = "Record was modified by someone else, reload and retry",
    *,
    after_flush=None,
) -> None:
    """
    Flush and commit once, without retry.

    Used for conditional writes (version-checked line items) where replaying
    the change would defeat the check. `after_flush` runs between the
    version-checked flush and the commit, inside the same transaction.
    """
    try:
        db.session.flush()
        if after_flush is not None:
            after_flush()
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError(message) from exc
    except OperationalError as exc:
        db.session.rollback()
        raise UnavailableError("Database is unavailable, try again later") from exc
