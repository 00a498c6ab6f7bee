"""HTTP tests for the auth, inquiry, offer and notification routers.

Uses a fresh FastAPI app with only the Warehub routers and error handlers,
wired to the test database and notifier through dependency overrides.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from warehub.services.auth_service import create_access_token


def _build_app_client(session_factory, notifier) -> AsyncClient:
    """Build an HTTPX AsyncClient wired to a test FastAPI app."""
    from fastapi import FastAPI

    from warehub.app.dependencies import get_notifier
    from warehub.app.http_errors import register_exception_handlers
    from warehub.app.routes.auth import router as auth_router
    from warehub.app.routes.inquiries import router as inquiries_router
    from warehub.app.routes.notifications import router as notifications_router
    from warehub.app.routes.offers import router as offers_router
    from warehub.infra.database import get_db

    test_app = FastAPI()
    register_exception_handlers(test_app)
    for router in (auth_router, inquiries_router, offers_router, notifications_router):
        test_app.include_router(router)

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    test_app.dependency_overrides[get_db] = _override_get_db
    test_app.dependency_overrides[get_notifier] = lambda: notifier

    return AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://testserver",
    )


def _auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
async def client(session_factory, notifier):
    async with _build_app_client(session_factory, notifier) as c:
        yield c


INQUIRY_BODY = {
    "start_date": "2025-01-01T00:00:00Z",
    "end_date": "2025-01-05T00:00:00Z",
    "notes": "Palletised dry goods",
}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:
    async def test_signup_creates_trader(self, client):
        resp = await client.post(
            "/api/auth/signup",
            json={"email": "New.Trader@Example.com", "password": "s3cret-pass", "name": "Nia"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"]["role"] == "trader"
        assert data["user"]["email"] == "new.trader@example.com"
        assert data["access_token"]

        me = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["id"] == data["user"]["id"]

    async def test_duplicate_signup(self, client):
        body = {"email": "dup@example.com", "password": "s3cret-pass", "name": "Dup"}
        assert (await client.post("/api/auth/signup", json=body)).status_code == 200
        assert (await client.post("/api/auth/signup", json=body)).status_code == 400

    async def test_login(self, client):
        body = {"email": "login@example.com", "password": "s3cret-pass", "name": "Lou"}
        await client.post("/api/auth/signup", json=body)

        ok = await client.post(
            "/api/auth/login", json={"email": "login@example.com", "password": "s3cret-pass"}
        )
        assert ok.status_code == 200
        bad = await client.post(
            "/api/auth/login", json={"email": "login@example.com", "password": "wrong-pass"}
        )
        assert bad.status_code == 401

    async def test_missing_token(self, client):
        resp = await client.get("/api/inquiries")
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Booking flow over HTTP
# ---------------------------------------------------------------------------


class TestBookingFlow:
    async def test_inquiry_to_booking(self, client, admin, trader, catalog):
        # Trader drafts and submits
        resp = await client.post(
            "/api/inquiries",
            headers=_auth(trader),
            json={**INQUIRY_BODY, "space_requests": [{"space_type_id": catalog.dry.id, "size_m2": 50}]},
        )
        assert resp.status_code == 201
        inquiry = resp.json()
        assert inquiry["status"] == "draft"
        assert set(inquiry["allowed_actions"]) == {"submitted", "cancelled"}

        resp = await client.post(
            f"/api/inquiries/{inquiry['id']}/status", headers=_auth(trader), json={"status": "submitted"}
        )
        assert resp.json()["status"] == "submitted"

        resp = await client.post(
            f"/api/inquiries/{inquiry['id']}/status", headers=_auth(admin), json={"status": "under_review"}
        )
        assert resp.json()["status"] == "under_review"

        # Administrator drafts an offer: 60 m2 * 300 * 5 days
        resp = await client.post(
            "/api/offers",
            headers=_auth(admin),
            json={
                "inquiry_id": inquiry["id"],
                "spaces": [{"space_id": catalog.dry_space.id, "allocated_size_m2": 60}],
                "terms": [{"term_type": "payment", "description": "Net 30"}],
            },
        )
        assert resp.status_code == 201
        offer = resp.json()
        assert offer["status"] == "draft"
        assert offer["summary"]["calculated_price_cents"] == 90_000
        assert offer["summary"]["actual_offer_cents"] is None

        # Sending without an actual offer fails and changes nothing
        resp = await client.post(f"/api/offers/{offer['id']}/send", headers=_auth(admin))
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

        resp = await client.post(
            f"/api/offers/{offer['id']}/actual", headers=_auth(admin), json={"actual_offer_cents": 95_000}
        )
        assert resp.json()["summary"]["actual_offer_cents"] == 95_000

        resp = await client.post(f"/api/offers/{offer['id']}/send", headers=_auth(admin))
        assert resp.status_code == 200
        assert resp.json()["status"] == "offer_sent"

        # Trader sees the headline figure but no internal breakdown
        resp = await client.get(f"/api/offers/{offer['id']}", headers=_auth(trader))
        assert resp.status_code == 200
        trader_view = resp.json()
        assert trader_view["actual_offer_cents"] == 95_000
        assert "summary" not in trader_view
        assert "admin_id" not in trader_view
        assert "is_manual_price" not in trader_view["spaces"][0]
        assert set(trader_view["allowed_actions"]) == {"accepted", "rejected", "changes_requested"}

        resp = await client.post(
            f"/api/offers/{offer['id']}/respond", headers=_auth(trader), json={"action": "accept"}
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "accepted"

        resp = await client.get(f"/api/inquiries/{inquiry['id']}", headers=_auth(trader))
        assert resp.json()["status"] == "accepted"

        # Inbox
        resp = await client.get("/api/notifications", headers=_auth(trader))
        assert [n["category"] for n in resp.json()] == ["offer_sent"]
        resp = await client.get("/api/notifications/unread-count", headers=_auth(admin))
        # inquiry_submitted + offer_accepted
        assert resp.json()["unread"] == 2

        resp = await client.get(f"/api/inquiries/{inquiry['id']}/timeline", headers=_auth(admin))
        statuses = [(e["entity_type"], e["to_status"]) for e in resp.json()]
        assert ("inquiry", "accepted") in statuses
        assert ("offer", "accepted") in statuses


# ---------------------------------------------------------------------------
# Error mapping and access
# ---------------------------------------------------------------------------


class TestErrors:
    async def test_trader_cannot_create_offer(self, client, trader, make_inquiry, catalog):
        inquiry = await make_inquiry()
        resp = await client.post(
            "/api/offers",
            headers=_auth(trader),
            json={"inquiry_id": inquiry.id, "spaces": []},
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "permission_denied"

    async def test_invalid_transition_is_conflict(self, client, admin, make_inquiry):
        inquiry = await make_inquiry(status="draft")
        resp = await client.post(
            f"/api/inquiries/{inquiry.id}/status", headers=_auth(admin), json={"status": "under_review"}
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "invalid_transition"

    async def test_unknown_offer(self, client, admin):
        resp = await client.get("/api/offers/does-not-exist", headers=_auth(admin))
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    async def test_unknown_space_is_unprocessable(self, client, admin, make_inquiry):
        inquiry = await make_inquiry()
        resp = await client.post(
            "/api/offers",
            headers=_auth(admin),
            json={"inquiry_id": inquiry.id, "spaces": [{"space_id": "ghost", "allocated_size_m2": 10}]},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "referential_error"

    async def test_trader_lists_only_own_inquiries(self, client, trader, other_trader, make_inquiry):
        mine = await make_inquiry(status="draft")
        await make_inquiry(status="draft", trader_id=other_trader.id)
        resp = await client.get("/api/inquiries", headers=_auth(trader))
        assert [i["id"] for i in resp.json()] == [mine.id]

    async def test_expire_endpoint(self, client, admin):
        resp = await client.post("/api/offers/expire", headers=_auth(admin))
        assert resp.status_code == 200
        assert resp.json() == {"expired": 0}


class TestNotificationsInbox:
    async def test_mark_read(self, client, trader, notifier):
        await notifier.notify_status_change("inq-1", trader.id, "offer_sent")

        listed = (await client.get("/api/notifications", headers=_auth(trader))).json()
        assert len(listed) == 1
        note_id = listed[0]["id"]

        resp = await client.post(f"/api/notifications/{note_id}/read", headers=_auth(trader))
        assert resp.json()["is_read"] is True
        count = await client.get("/api/notifications/unread-count", headers=_auth(trader))
        assert count.json()["unread"] == 0

    async def test_cannot_read_someone_elses(self, client, trader, other_trader, notifier):
        await notifier.notify_status_change("inq-1", trader.id, "offer_sent")
        listed = (await client.get("/api/notifications", headers=_auth(trader))).json()

        resp = await client.post(
            f"/api/notifications/{listed[0]['id']}/read", headers=_auth(other_trader)
        )
        assert resp.status_code == 404

    async def test_read_all(self, client, trader, notifier):
        await notifier.notify_status_change("inq-1", trader.id, "offer_sent")
        await notifier.notify_status_change("inq-1", trader.id, "expired")
        resp = await client.post("/api/notifications/read-all", headers=_auth(trader))
        assert resp.json() == {"marked": 2}
