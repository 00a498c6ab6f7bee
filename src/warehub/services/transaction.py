"""Commit-once transaction runner shared by the inquiry and offer services."""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from warehub.services.errors import ConflictError
from warehub.services.notifier import Notifier, PendingNotification

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[tuple[T, list[PendingNotification]]]]


async def run_with_retry(
    db: AsyncSession,
    notifier: Optional[Notifier],
    label: str,
    operation: Operation,
    attempts: int = 2,
) -> T:
    """Run ``operation`` and commit; retry on a version conflict, then give up.

    ``operation`` returns ``(result, pending_notifications)``. It must re-read
    everything it writes, since a retry starts from a rolled-back session.
    Pending notifications are dispatched only once the commit went through.
    """
    for attempt in range(1, attempts + 1):
        try:
            result, pending = await operation()
            await db.commit()
        except StaleDataError:
            await db.rollback()
            if attempt == attempts:
                logger.error("%s: concurrent update persisted after %d attempts", label, attempts)
                raise ConflictError(f"{label} conflicted with a concurrent update; reload and try again")
            logger.warning("%s: concurrent update detected, retrying", label)
            continue
        except Exception:
            await db.rollback()
            raise

        if pending and notifier is not None:
            await notifier.dispatch(pending)
        return result
