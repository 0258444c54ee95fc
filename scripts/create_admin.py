#!/usr/bin/env python3
"""
Create an admin account.

Admins cannot self-register through the API, so the first one is created
here. Reads DATABASE_URL and JWT_SECRET_KEY from the environment or .env.

Usage:
    python scripts/create_admin.py <email> <first name> <last name>
"""

import asyncio
import getpass
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

load_dotenv(project_root / ".env")

from sqlalchemy import insert, select  # noqa: E402
from sqlalchemy.exc import IntegrityError  # noqa: E402

from telemed.core.permissions import ROLE_ADMIN  # noqa: E402
from telemed.core.security import get_password_hash  # noqa: E402
from telemed.database import AsyncSessionLocal, engine, transaction  # noqa: E402
from telemed.models import profiles, users  # noqa: E402


async def create_admin(email: str, first_name: str, last_name: str, password: str) -> None:
    """Insert the admin user and profile in one transaction."""
    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(users.c.id).where(users.c.email == email))
        if existing.first() is not None:
            print(f"✗ User {email} already exists", file=sys.stderr)
            sys.exit(1)

        try:
            async with transaction(db):
                result = await db.execute(
                    insert(users)
                    .values(
                        email=email,
                        password_hash=get_password_hash(password),
                        role=ROLE_ADMIN,
                        email_verified=True,
                    )
                    .returning(users.c.id)
                )
                user_id = result.scalar_one()
                await db.execute(
                    insert(profiles).values(
                        user_id=user_id, first_name=first_name, last_name=last_name
                    )
                )
        except IntegrityError as e:
            print(f"✗ Could not create admin: {e.orig}", file=sys.stderr)
            sys.exit(1)

    await engine.dispose()
    print(f"✓ Admin {email} created ({user_id})")


def main() -> None:
    """Parse arguments and prompt for the password."""
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)

    email, first_name, last_name = sys.argv[1:]
    password = getpass.getpass("Password (min 8 characters): ")
    if len(password) < 8:
        print("✗ Password must be at least 8 characters", file=sys.stderr)
        sys.exit(1)
    if password != getpass.getpass("Repeat password: "):
        print("✗ Passwords do not match", file=sys.stderr)
        sys.exit(1)

    asyncio.run(create_admin(email, first_name, last_name, password))


if __name__ == "__main__":
    main()
