"""
All-or-nothing units of work over one AsyncSession.

A unit issues its conditional UPDATE/INSERT/DELETE statements and commits.
Any exception rolls the whole unit back. Transient storage faults
(OperationalError: lock timeouts, dropped connections, serialization
failures) are retried with linear backoff, since the caller has not observed
anything yet; after COMMIT_RETRY_ATTEMPTS the fault surfaces as
TransientStorageError (503, retry later).
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import get_settings
from ticketing.core.errors import TransientStorageError
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_commit_retry

logger = get_logger(__name__)

T = TypeVar("T")


async def run_atomic(db: AsyncSession, operation: str, unit: Callable[[], Awaitable[T]]) -> T:
    settings = get_settings()
    attempts = max(1, settings.COMMIT_RETRY_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        try:
            return await unit()
        except OperationalError as e:
            await db.rollback()
            if attempt == attempts:
                logger.error("commit_failed", operation=operation, attempts=attempt, error=str(e))
                raise TransientStorageError() from e
            record_commit_retry(operation)
            logger.warning("commit_retry", operation=operation, attempt=attempt, error=str(e))
            await asyncio.sleep(settings.COMMIT_RETRY_BACKOFF_SECONDS * attempt)
        except Exception:
            await db.rollback()
            raise

    raise TransientStorageError()
