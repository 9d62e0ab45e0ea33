"""
Create the Postgres test database.

Tests run on in-memory SQLite by default; point TEST_DATABASE_URL at
the database created here to run them against Postgres instead.
"""

import asyncio
import os

import asyncpg

TEST_DB_NAME = os.getenv("TEST_DB_NAME", "tenantguard_test")


async def create_test_database() -> None:
    """Create the test database if it doesn't exist."""
    conn = await asyncpg.connect(
        user=os.getenv("POSTGRES_USER", "tenantguard"),
        password=os.getenv("POSTGRES_PASSWORD", "dev_password_change_in_prod"),
        database="postgres",
        host=os.getenv("POSTGRES_HOST", "localhost"),
    )

    try:
        exists = await conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1", TEST_DB_NAME
        )
        if not exists:
            await conn.execute(f'CREATE DATABASE "{TEST_DB_NAME}"')
            print(f"Test database created: {TEST_DB_NAME}")
        else:
            print(f"Test database already exists: {TEST_DB_NAME}")
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(create_test_database())
