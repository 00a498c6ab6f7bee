"""Bootstrap script: create (or re-activate) an administrator account.

Signup only ever creates traders, so administrators are provisioned here.

Usage:
    python scripts/create_admin.py admin@example.com --name "Ops Admin"

The password is read from --password or prompted for.
"""

import argparse
import asyncio
import getpass
import logging

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)


async def create_admin(email: str, password: str, name: str) -> None:
    from warehub.infra.database import async_session, init_db
    from warehub.services.auth_service import provision_administrator

    await init_db()

    async with async_session() as session:
        user = await provision_administrator(session, email, password, name)
    logger.info("Administrator ready: %s (%s).", user.id, email)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a Warehub administrator account.")
    parser.add_argument("email")
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", default=None)
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        parser.error("password must be at least 8 characters")
    asyncio.run(create_admin(args.email, password, args.name))


if __name__ == "__main__":
    main()
