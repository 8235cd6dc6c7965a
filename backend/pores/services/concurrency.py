# Overview: Row locking and retry helpers for read-modify-write operations.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Lock the selected rows until the surrounding transaction ends.

    NOTE: SQLite has no FOR UPDATE; there the version_id column is what
    catches a lost update.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Call func() again when a concurrent writer gets in the way.

    Retries on OperationalError (deadlocks, lock timeouts) and
    StaleDataError (optimistic version conflicts). The session is rolled
    back before each retry so func() starts from fresh rows.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.info("Retrying after concurrency conflict (attempt %s): %s", attempt + 1, exc.__class__.__name__)
            time.sleep(backoff_base * (2 ** attempt))
