"""Access Guard: role and ownership checks for every booking operation.

Each check runs before any other work in an operation and raises
PermissionDenied. Ownership queries do not tell a missing record apart from
somebody else's, so a denied caller learns nothing about existence.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warehub.domain.enums import ActorRole, UserRole
from warehub.domain.models import Inquiry, Offer, User
from warehub.services.errors import PermissionDenied

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Who is calling: threaded explicitly through every operation."""

    user_id: str
    role: ActorRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=ActorRole(user.role))

    @property
    def is_administrator(self) -> bool:
        return self.role == ActorRole.ADMINISTRATOR


class AuthorizationOracle(Protocol):
    async def is_administrator(self, user_id: str) -> bool: ...

    async def owns_inquiry(self, user_id: str, inquiry_id: str) -> bool: ...

    async def owns_offer(self, user_id: str, offer_id: str) -> bool: ...


class DatabaseAuthorizationOracle:
    """Answers authorization questions from the users/inquiries/offers tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_administrator(self, user_id: str) -> bool:
        result = await self.db.execute(
            select(User.id).where(
                User.id == user_id,
                User.role == UserRole.ADMINISTRATOR.value,
                User.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none() is not None

    async def owns_inquiry(self, user_id: str, inquiry_id: str) -> bool:
        result = await self.db.execute(
            select(Inquiry.id).where(Inquiry.id == inquiry_id, Inquiry.trader_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def owns_offer(self, user_id: str, offer_id: str) -> bool:
        result = await self.db.execute(
            select(Offer.id)
            .join(Inquiry, Offer.inquiry_id == Inquiry.id)
            .where(Offer.id == offer_id, Inquiry.trader_id == user_id)
        )
        return result.scalar_one_or_none() is not None


class AccessGuard:
    def __init__(self, oracle: AuthorizationOracle):
        self.oracle = oracle

    async def require_administrator(self, actor: Actor) -> None:
        if actor.role != ActorRole.ADMINISTRATOR or not await self.oracle.is_administrator(
            actor.user_id
        ):
            logger.warning("User %s denied administrator access", actor.user_id)
            raise PermissionDenied("Administrator role required")

    async def require_trader(self, actor: Actor) -> None:
        if actor.role != ActorRole.TRADER:
            raise PermissionDenied("Trader role required")

    async def require_inquiry_owner(self, actor: Actor, inquiry_id: str) -> None:
        if actor.role != ActorRole.TRADER or not await self.oracle.owns_inquiry(
            actor.user_id, inquiry_id
        ):
            raise PermissionDenied("Only the trader who owns this inquiry may do this")

    async def require_offer_owner(self, actor: Actor, offer_id: str) -> None:
        if actor.role != ActorRole.TRADER or not await self.oracle.owns_offer(
            actor.user_id, offer_id
        ):
            raise PermissionDenied("Only the trader who owns this offer may do this")

    async def require_inquiry_access(self, actor: Actor, inquiry_id: str) -> None:
        """Administrator, or the owning trader."""
        if actor.role == ActorRole.ADMINISTRATOR:
            await self.require_administrator(actor)
            return
        await self.require_inquiry_owner(actor, inquiry_id)

    async def require_offer_access(self, actor: Actor, offer_id: str) -> None:
        """Administrator, or the trader owning the offer's inquiry."""
        if actor.role == ActorRole.ADMINISTRATOR:
            await self.require_administrator(actor)
            return
        await self.require_offer_owner(actor, offer_id)
