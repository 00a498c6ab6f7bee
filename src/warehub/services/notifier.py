"""Notifier: turns committed status changes into user notifications.

Dispatch runs after the state change committed, each sink in its own session.
Nothing raised here reaches the caller: a failed lookup or sink push is logged
and the remaining recipients/sinks still get their turn.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warehub.domain.enums import BookingStatus, NotificationCategory, UserRole
from warehub.domain.models import Notification, User
from warehub.services.email_service import send_notification_email

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]

ADMINISTRATORS = "administrators"
TRADER = "trader"


@dataclass(frozen=True)
class NotificationTemplate:
    category: NotificationCategory
    audience: str
    title: str
    body: str


NOTIFICATION_TEMPLATES: dict[BookingStatus, NotificationTemplate] = {
    BookingStatus.SUBMITTED: NotificationTemplate(
        NotificationCategory.INQUIRY_SUBMITTED,
        ADMINISTRATORS,
        "New Inquiry Submitted",
        "A trader submitted a new inquiry that is waiting for review.",
    ),
    BookingStatus.OFFER_SENT: NotificationTemplate(
        NotificationCategory.OFFER_SENT,
        TRADER,
        "New Offer Available",
        "You have received an offer for your inquiry. Review it before it expires.",
    ),
    BookingStatus.CHANGES_REQUESTED: NotificationTemplate(
        NotificationCategory.CHANGES_REQUESTED,
        ADMINISTRATORS,
        "Changes Requested",
        "The trader asked for changes to the offer on their inquiry.",
    ),
    BookingStatus.ACCEPTED: NotificationTemplate(
        NotificationCategory.OFFER_ACCEPTED,
        ADMINISTRATORS,
        "Offer Accepted",
        "The trader accepted the offer. A booking has been created.",
    ),
    BookingStatus.REJECTED: NotificationTemplate(
        NotificationCategory.OFFER_REJECTED,
        ADMINISTRATORS,
        "Offer Rejected",
        "The trader rejected the offer on their inquiry.",
    ),
    BookingStatus.EXPIRED: NotificationTemplate(
        NotificationCategory.OFFER_EXPIRED,
        TRADER,
        "Offer Expired",
        "The offer on your inquiry expired before it was answered.",
    ),
    BookingStatus.CANCELLED: NotificationTemplate(
        NotificationCategory.INQUIRY_CANCELLED,
        TRADER,
        "Inquiry Cancelled",
        "Your inquiry has been cancelled.",
    ),
}


@dataclass(frozen=True)
class PendingNotification:
    """A status change collected inside a transaction, dispatched after commit."""

    inquiry_id: str
    trader_id: str
    status: BookingStatus
    actor_id: Optional[str] = None


class NotificationSink(Protocol):
    async def push(
        self,
        recipient_id: str,
        category: NotificationCategory,
        title: str,
        body: str,
        inquiry_id: Optional[str],
    ) -> None: ...


class DatabaseNotificationSink:
    """Stores notifications in the notifications table for the in-app inbox."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def push(self, recipient_id, category, title, body, inquiry_id) -> None:
        async with self.session_factory() as session:
            session.add(
                Notification(
                    user_id=recipient_id,
                    category=category.value,
                    title=title,
                    body=body,
                    inquiry_id=inquiry_id,
                )
            )
            await session.commit()


class EmailNotificationSink:
    """Emails the notification to the recipient's account address via SendGrid."""

    def __init__(self, session_factory: SessionFactory, sender=send_notification_email):
        self.session_factory = session_factory
        self.sender = sender

    async def push(self, recipient_id, category, title, body, inquiry_id) -> None:
        async with self.session_factory() as session:
            result = await session.execute(select(User.email).where(User.id == recipient_id))
            email = result.scalar_one_or_none()
        if not email:
            logger.warning("No email address for user %s, skipping %s email", recipient_id, category.value)
            return
        await self.sender(email, title, body, inquiry_id)


class Notifier:
    def __init__(self, session_factory: SessionFactory, sinks: Sequence[NotificationSink]):
        self.session_factory = session_factory
        self.sinks = list(sinks)

    async def notify_status_change(
        self,
        inquiry_id: str,
        trader_id: str,
        new_status: BookingStatus,
        actor_id: Optional[str] = None,
    ) -> int:
        """Push the template for ``new_status`` to its recipients.

        Returns the number of successful pushes. Statuses without a template
        are ignored, and the user who caused the change is not told about it.
        """
        template = NOTIFICATION_TEMPLATES.get(BookingStatus(new_status))
        if template is None:
            return 0

        try:
            recipients = await self._recipients(template, trader_id)
            recipients = [r for r in recipients if r != actor_id]
        except Exception:
            logger.exception(
                "Could not resolve recipients for %s on inquiry %s", template.category.value, inquiry_id
            )
            return 0

        delivered = 0
        for recipient_id in recipients:
            for sink in self.sinks:
                try:
                    await sink.push(
                        recipient_id, template.category, template.title, template.body, inquiry_id
                    )
                    delivered += 1
                except Exception:
                    logger.exception(
                        "%s failed to push %s to user %s (inquiry %s)",
                        type(sink).__name__,
                        template.category.value,
                        recipient_id,
                        inquiry_id,
                    )

        logger.info(
            "Notification %s for inquiry %s: %d push(es) to %d recipient(s)",
            template.category.value, inquiry_id, delivered, len(recipients),
        )
        return delivered

    async def dispatch(self, pending: Iterable[PendingNotification]) -> None:
        for item in pending:
            await self.notify_status_change(
                item.inquiry_id, item.trader_id, item.status, item.actor_id
            )

    async def _recipients(self, template: NotificationTemplate, trader_id: str) -> list[str]:
        if template.audience == TRADER:
            return [trader_id]
        async with self.session_factory() as session:
            result = await session.execute(
                select(User.id)
                .where(User.role == UserRole.ADMINISTRATOR.value, User.is_active.is_(True))
                .order_by(User.created_at.asc())
            )
            return list(result.scalars().all())
