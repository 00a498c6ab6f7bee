"""Tests for the Notifier and its sinks."""

from unittest.mock import AsyncMock

from sqlalchemy import select

from warehub.domain.enums import BookingStatus, NotificationCategory, UserRole
from warehub.domain.models import Notification
from warehub.services.notifier import (
    DatabaseNotificationSink,
    EmailNotificationSink,
    Notifier,
    PendingNotification,
)


class ExplodingSink:
    async def push(self, recipient_id, category, title, body, inquiry_id):
        raise RuntimeError("sink down")


async def _notifications(db_session, user_id):
    result = await db_session.execute(
        select(Notification).where(Notification.user_id == user_id)
    )
    return list(result.scalars().all())


class TestRecipients:
    async def test_offer_sent_goes_to_trader(self, notifier, recording_sink, trader):
        delivered = await notifier.notify_status_change("inq-1", trader.id, BookingStatus.OFFER_SENT)
        # database sink + recording sink
        assert delivered == 2
        assert recording_sink.pushed == [
            (trader.id, NotificationCategory.OFFER_SENT.value, "New Offer Available", "inq-1")
        ]

    async def test_submission_goes_to_every_active_administrator(
        self, session_factory, recording_sink, make_user, trader
    ):
        first = await make_user(role=UserRole.ADMINISTRATOR.value)
        second = await make_user(role=UserRole.ADMINISTRATOR.value)
        await make_user(role=UserRole.ADMINISTRATOR.value, is_active=False)

        notifier = Notifier(session_factory, [recording_sink])
        delivered = await notifier.notify_status_change("inq-1", trader.id, BookingStatus.SUBMITTED)

        assert delivered == 2
        assert {p[0] for p in recording_sink.pushed} == {first.id, second.id}
        assert all(p[1] == "inquiry_submitted" for p in recording_sink.pushed)

    async def test_actor_is_not_told_about_their_own_change(
        self, notifier, recording_sink, trader
    ):
        delivered = await notifier.notify_status_change(
            "inq-1", trader.id, BookingStatus.CANCELLED, actor_id=trader.id
        )
        assert delivered == 0
        assert recording_sink.pushed == []

    async def test_other_administrators_still_told(
        self, session_factory, recording_sink, make_user, trader
    ):
        acting = await make_user(role=UserRole.ADMINISTRATOR.value)
        colleague = await make_user(role=UserRole.ADMINISTRATOR.value)

        notifier = Notifier(session_factory, [recording_sink])
        await notifier.dispatch(
            [PendingNotification("inq-1", trader.id, BookingStatus.SUBMITTED, acting.id)]
        )
        assert [p[0] for p in recording_sink.pushed] == [colleague.id]

    async def test_status_without_template_is_ignored(self, notifier, recording_sink, trader):
        assert await notifier.notify_status_change("inq-1", trader.id, BookingStatus.CONFIRMED) == 0
        assert recording_sink.pushed == []


class TestFailureIsolation:
    async def test_failing_sink_does_not_block_others(
        self, session_factory, recording_sink, trader
    ):
        notifier = Notifier(session_factory, [ExplodingSink(), recording_sink])
        delivered = await notifier.notify_status_change("inq-1", trader.id, BookingStatus.EXPIRED)
        assert delivered == 1
        assert len(recording_sink.pushed) == 1

    async def test_dispatch_never_raises(self, session_factory, trader):
        notifier = Notifier(session_factory, [ExplodingSink()])
        await notifier.dispatch(
            [
                PendingNotification("inq-1", trader.id, BookingStatus.OFFER_SENT),
                PendingNotification("inq-1", trader.id, BookingStatus.CANCELLED),
            ]
        )


class TestSinks:
    async def test_database_sink_writes_inbox_row(self, session_factory, db_session, trader):
        sink = DatabaseNotificationSink(session_factory)
        await sink.push(trader.id, NotificationCategory.OFFER_EXPIRED, "Offer Expired", "gone", None)

        rows = await _notifications(db_session, trader.id)
        assert len(rows) == 1
        assert rows[0].category == "offer_expired"
        assert rows[0].is_read is False

    async def test_email_sink_looks_up_address(self, session_factory, make_user):
        user = await make_user(email="tom@example.com")
        sender = AsyncMock(return_value=True)
        sink = EmailNotificationSink(session_factory, sender=sender)

        await sink.push(user.id, NotificationCategory.OFFER_SENT, "New Offer Available", "body", "inq-9")

        sender.assert_awaited_once_with("tom@example.com", "New Offer Available", "body", "inq-9")

    async def test_email_sink_skips_unknown_user(self, session_factory):
        sender = AsyncMock()
        sink = EmailNotificationSink(session_factory, sender=sender)
        await sink.push("nobody", NotificationCategory.OFFER_SENT, "t", "b", None)
        sender.assert_not_awaited()
