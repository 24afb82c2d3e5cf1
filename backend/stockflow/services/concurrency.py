# Overview: Unit-of-work boundary for stock operations; row locking and conflict retry.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StoreError
from ..extensions import db


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns on stock rows still turn a lost race into a
    StaleDataError at flush time there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, commit: bool = True):
    """
    Execute one unit of work and commit it.

    - Concurrency conflicts (OperationalError for locks/deadlocks, StaleDataError
      for a failed compare-on-write) roll back and re-run func from scratch, so
      the balance check is re-read rather than overwritten.
    - Any other exception rolls back and propagates; domain errors are never retried.
    - Other SQLAlchemy failures surface as StoreError after the rollback.
    """
    if attempts is None:
        attempts = current_app.config.get("STORE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("STORE_RETRY_BACKOFF", 0.1)

    for attempt in range(attempts):
        try:
            result = func()
            if commit:
                db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StoreError(
                    "Stock store conflict; operation rolled back",
                    details={"attempts": attempts},
                ) from exc
            logger.warning("Concurrent stock update detected, retrying (attempt %s/%s)", attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError("Stock store failure; operation rolled back") from exc
        except Exception:
            db.session.rollback()
            raise
    raise StoreError("Stock operation was not attempted", details={"attempts": attempts})
