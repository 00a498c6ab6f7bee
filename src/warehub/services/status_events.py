"""Audit trail for inquiry and offer status changes."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warehub.domain.enums import ActorRole, BookingStatus, StatusEntity
from warehub.domain.models import StatusEvent

logger = logging.getLogger(__name__)


def record_status_change(
    db: AsyncSession,
    entity_type: StatusEntity,
    entity_id: str,
    inquiry_id: str,
    from_status: Optional[BookingStatus],
    to_status: BookingStatus,
    actor: ActorRole,
    actor_id: Optional[str],
    extra_data: dict | None = None,
) -> StatusEvent:
    """Add a StatusEvent row to the current transaction and log the move."""
    event = StatusEvent(
        id=str(uuid.uuid4()),
        entity_type=entity_type.value,
        entity_id=entity_id,
        inquiry_id=inquiry_id,
        actor=actor.value,
        actor_id=actor_id,
        from_status=from_status.value if from_status else None,
        to_status=to_status.value,
        data=extra_data,
        created_at=datetime.now(timezone.utc),
    )
    db.add(event)

    logger.info(
        "%s %s: %s → %s (actor=%s, user=%s)",
        entity_type.value.capitalize(),
        entity_id,
        from_status.value if from_status else None,
        to_status.value,
        actor.value,
        actor_id,
    )
    return event


async def list_status_events(db: AsyncSession, inquiry_id: str) -> list[StatusEvent]:
    """Every status event of an inquiry and its offers, oldest first."""
    result = await db.execute(
        select(StatusEvent)
        .where(StatusEvent.inquiry_id == inquiry_id)
        .order_by(StatusEvent.created_at.asc())
    )
    return list(result.scalars().all())
