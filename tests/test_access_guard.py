"""Tests for AccessGuard role and ownership checks."""

import uuid

import pytest

from warehub.domain.enums import ActorRole, UserRole
from warehub.domain.models import Offer
from warehub.services.access_guard import AccessGuard, Actor
from warehub.services.errors import PermissionDenied


class StubOracle:
    """In-memory oracle: sets of administrator ids and (user, record) ownership pairs."""

    def __init__(self, admins=(), inquiries=(), offers=()):
        self.admins = set(admins)
        self.inquiries = set(inquiries)
        self.offers = set(offers)

    async def is_administrator(self, user_id):
        return user_id in self.admins

    async def owns_inquiry(self, user_id, inquiry_id):
        return (user_id, inquiry_id) in self.inquiries

    async def owns_offer(self, user_id, offer_id):
        return (user_id, offer_id) in self.offers


# ---------------------------------------------------------------------------
# Role checks against a stub oracle
# ---------------------------------------------------------------------------


class TestRoleChecks:
    async def test_administrator_passes(self):
        guard = AccessGuard(StubOracle(admins={"u-admin"}))
        await guard.require_administrator(Actor("u-admin", ActorRole.ADMINISTRATOR))

    async def test_claimed_role_must_match_record(self):
        guard = AccessGuard(StubOracle())
        with pytest.raises(PermissionDenied):
            await guard.require_administrator(Actor("u-impostor", ActorRole.ADMINISTRATOR))

    async def test_trader_is_not_administrator(self):
        guard = AccessGuard(StubOracle(admins={"u-1"}))
        with pytest.raises(PermissionDenied):
            await guard.require_administrator(Actor("u-1", ActorRole.TRADER))

    async def test_system_is_not_trader(self):
        guard = AccessGuard(StubOracle())
        with pytest.raises(PermissionDenied):
            await guard.require_trader(Actor(None, ActorRole.SYSTEM))

    async def test_inquiry_owner(self):
        guard = AccessGuard(StubOracle(inquiries={("u-t", "inq-1")}))
        await guard.require_inquiry_owner(Actor("u-t", ActorRole.TRADER), "inq-1")
        with pytest.raises(PermissionDenied):
            await guard.require_inquiry_owner(Actor("u-t", ActorRole.TRADER), "inq-2")

    async def test_administrator_is_not_offer_owner(self):
        guard = AccessGuard(StubOracle(admins={"u-a"}, offers={("u-a", "off-1")}))
        with pytest.raises(PermissionDenied):
            await guard.require_offer_owner(Actor("u-a", ActorRole.ADMINISTRATOR), "off-1")

    async def test_inquiry_access_for_admin_or_owner(self):
        guard = AccessGuard(StubOracle(admins={"u-a"}, inquiries={("u-t", "inq-1")}))
        await guard.require_inquiry_access(Actor("u-a", ActorRole.ADMINISTRATOR), "inq-1")
        await guard.require_inquiry_access(Actor("u-t", ActorRole.TRADER), "inq-1")
        with pytest.raises(PermissionDenied):
            await guard.require_inquiry_access(Actor("u-other", ActorRole.TRADER), "inq-1")


# ---------------------------------------------------------------------------
# Database oracle
# ---------------------------------------------------------------------------


class TestDatabaseOracle:
    async def test_active_administrator(self, guard, admin_actor):
        await guard.require_administrator(admin_actor)

    async def test_inactive_administrator_denied(self, guard, make_user):
        retired = await make_user(role=UserRole.ADMINISTRATOR.value, is_active=False)
        with pytest.raises(PermissionDenied):
            await guard.require_administrator(Actor(retired.id, ActorRole.ADMINISTRATOR))

    async def test_offer_ownership_goes_through_inquiry(
        self, db_session, guard, admin, make_inquiry, trader_actor, other_trader_actor
    ):
        inquiry = await make_inquiry()
        offer = Offer(id=str(uuid.uuid4()), inquiry_id=inquiry.id, admin_id=admin.id, status="draft")
        db_session.add(offer)
        await db_session.commit()

        await guard.require_offer_owner(trader_actor, offer.id)
        with pytest.raises(PermissionDenied):
            await guard.require_offer_owner(other_trader_actor, offer.id)

    async def test_missing_record_looks_like_someone_elses(self, guard, trader_actor):
        with pytest.raises(PermissionDenied):
            await guard.require_inquiry_owner(trader_actor, str(uuid.uuid4()))
