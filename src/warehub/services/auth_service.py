"""Account service: bcrypt passwords, bearer tokens and trader/administrator accounts.

Tokens carry the user id and platform role. The role claim is only a hint for
clients; every request reloads the user, so a deactivated or demoted account
loses access at once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warehub.app.config import get_settings
from warehub.domain.enums import UserRole
from warehub.domain.models import User

logger = logging.getLogger(__name__)

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ISSUER = "warehub"


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: UserRole
    expires_at: datetime


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str, role, now: datetime | None = None) -> str:
    """Sign a bearer token for a trader or administrator account."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": UserRole(role).value,
        "iss": TOKEN_ISSUER,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_expiration_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenClaims | None:
    """Verified claims, or None for a bad, expired or foreign token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=TOKEN_ISSUER,
        )
        return TokenClaims(
            user_id=payload["sub"],
            role=UserRole(payload["role"]),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (JWTError, KeyError, ValueError):
        return None


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_active_user(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
    return result.scalar_one_or_none()


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    """Check credentials and stamp the login time. Inactive accounts are returned
    as-is so the caller can tell a disabled account from a wrong password."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    if user.is_active:
        user.last_login_at = datetime.now(timezone.utc)
        await db.commit()
    return user


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: UserRole = UserRole.TRADER,
    company: str | None = None,
    phone: str | None = None,
) -> User:
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        name=name,
        role=UserRole(role).value,
        company=company,
        phone=phone,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created %s account %s", user.role, user.id)
    return user


async def provision_administrator(db: AsyncSession, email: str, password: str, name: str) -> User:
    """Create an administrator, or promote and re-activate an existing account."""
    user = await get_user_by_email(db, email)
    if user is None:
        return await create_user(db, email, password, name, UserRole.ADMINISTRATOR)
    user.role = UserRole.ADMINISTRATOR.value
    user.is_active = True
    user.password_hash = hash_password(password)
    await db.commit()
    logger.info("Promoted account %s to administrator", user.id)
    return user
