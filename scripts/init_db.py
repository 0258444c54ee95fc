"""Create the telemed tables directly from metadata (local development only).

Production databases are built with ``scripts/migrate.py``; this skips the
slot overlap exclusion constraint that migration 002 adds.
"""

import asyncio

from sqlalchemy import text

from telemed.database import engine
from telemed.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        # gen_random_uuid() lives in pgcrypto on older servers
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
