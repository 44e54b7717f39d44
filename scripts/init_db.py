"""Script to initialize the database."""

import asyncio

from sqlalchemy import text

from barshift.database import engine
from barshift.models import metadata


async def init_db() -> None:
    """Create every table directly from the table metadata."""
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
