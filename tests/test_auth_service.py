"""Tests for account handling: tokens, credential checks, administrator provisioning."""

from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlalchemy import select

from warehub.domain.enums import UserRole
from warehub.domain.models import User
from warehub.services.auth_service import (
    authenticate,
    create_access_token,
    create_user,
    decode_token,
    get_active_user,
    provision_administrator,
    settings,
)


class TestTokens:
    def test_claims_round_trip(self):
        claims = decode_token(create_access_token("user-1", "administrator"))
        assert claims.user_id == "user-1"
        assert claims.role == UserRole.ADMINISTRATOR

    def test_expired_token_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(minutes=settings.jwt_expiration_minutes + 5)
        assert decode_token(create_access_token("user-1", "trader", now=issued)) is None

    def test_token_from_another_issuer_rejected(self):
        foreign = jwt.encode(
            {"sub": "user-1", "role": "trader", "iss": "someone-else",
             "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_token(foreign) is None

    def test_unknown_role_claim_rejected(self):
        forged = jwt.encode(
            {"sub": "user-1", "role": "superuser", "iss": "warehub",
             "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_token(forged) is None

    def test_garbage_rejected(self):
        assert decode_token("not-a-token") is None


class TestAccounts:
    async def test_authenticate_stamps_login(self, db_session):
        user = await create_user(db_session, " Tia@Example.com ", "s3cret-pass", "Tia")
        assert user.email == "tia@example.com"
        assert user.role == UserRole.TRADER.value

        found = await authenticate(db_session, "TIA@example.com", "s3cret-pass")
        assert found.id == user.id
        assert found.last_login_at is not None

    async def test_wrong_password(self, db_session):
        await create_user(db_session, "wp@example.com", "s3cret-pass", "Wes")
        assert await authenticate(db_session, "wp@example.com", "nope-nope") is None
        assert await authenticate(db_session, "ghost@example.com", "s3cret-pass") is None

    async def test_inactive_account_is_returned_but_not_loaded_for_requests(self, db_session):
        user = await create_user(db_session, "off@example.com", "s3cret-pass", "Otto")
        user.is_active = False
        await db_session.commit()

        found = await authenticate(db_session, "off@example.com", "s3cret-pass")
        assert found is not None and found.is_active is False
        assert await get_active_user(db_session, user.id) is None

    async def test_provision_promotes_existing_trader(self, db_session):
        user = await create_user(db_session, "promo@example.com", "old-password", "Pat")
        user.is_active = False
        await db_session.commit()

        admin = await provision_administrator(db_session, "promo@example.com", "new-password", "Pat")
        assert admin.id == user.id
        row = (await db_session.execute(
            select(User.role, User.is_active).where(User.id == user.id)
        )).one()
        assert tuple(row) == (UserRole.ADMINISTRATOR.value, True)
        assert await authenticate(db_session, "promo@example.com", "new-password") is not None

    async def test_provision_creates_new_administrator(self, db_session):
        admin = await provision_administrator(db_session, "ops@example.com", "s3cret-pass", "Ops")
        assert admin.role == UserRole.ADMINISTRATOR.value
