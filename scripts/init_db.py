"""
Database Initialization Script

Creates the users and verify_logs tables (and the append-only rules on
verify_logs) if they do not exist yet. Safe to run repeatedly.
"""

import asyncio
import sys

import asyncpg

from postcode_verifier.database import apply_schema


async def init_db(database_url: str) -> None:
    """Apply the schema to the given database."""
    if database_url.startswith("postgresql+asyncpg://"):
        database_url = database_url.replace("postgresql+asyncpg://", "postgresql://", 1)

    conn = await asyncpg.connect(database_url)

    try:
        async with conn.transaction():
            await apply_schema(conn)

        tables = await conn.fetch(
            """
            SELECT table_name FROM information_schema.tables
            WHERE table_name IN ('users', 'verify_logs')
            ORDER BY table_name
            """
        )
    finally:
        await conn.close()

    for row in tables:
        print(f"✅ Table {row['table_name']} is ready")


async def main():
    """Main entry point."""
    import argparse

    from postcode_verifier.config import settings

    parser = argparse.ArgumentParser(
        description="Create the Postcode Verifier database schema"
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="PostgreSQL connection URL (defaults to DATABASE_URL)"
    )

    args = parser.parse_args()

    try:
        await init_db(args.database_url)
    except (OSError, asyncpg.PostgresError) as e:
        print(f"❌ Error creating schema: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
