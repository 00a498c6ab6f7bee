"""FastAPI dependencies wiring sessions, the access guard and the notifier into services."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from warehub.app.config import get_settings
from warehub.app.routes.auth import get_current_user_dep
from warehub.domain.models import User
from warehub.infra.database import async_session, get_db
from warehub.services.access_guard import AccessGuard, Actor, DatabaseAuthorizationOracle
from warehub.services.inquiry_service import InquiryService
from warehub.services.notifier import DatabaseNotificationSink, EmailNotificationSink, Notifier
from warehub.services.offer_repository import OfferRepository


def get_notifier() -> Notifier:
    """Notifier writing to the in-app inbox, plus email when SendGrid is configured."""
    sinks = [DatabaseNotificationSink(async_session)]
    if get_settings().email_notifications_enabled:
        sinks.append(EmailNotificationSink(async_session))
    return Notifier(async_session, sinks)


async def get_actor(user: User = Depends(get_current_user_dep)) -> Actor:
    return Actor.from_user(user)


def get_offer_repository(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> OfferRepository:
    return OfferRepository(
        db,
        AccessGuard(DatabaseAuthorizationOracle(db)),
        notifier,
        offer_validity_days=get_settings().offer_validity_days,
    )


def get_inquiry_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> InquiryService:
    return InquiryService(db, AccessGuard(DatabaseAuthorizationOracle(db)), notifier)
