"""
Classifieds Database Connection

The hosted data backend is a managed PostgreSQL instance sitting behind a
transaction pooler. Everything in this package talks to it through one
asyncpg pool:
- one pool per process, created in the app lifespan
- prepared statement cache disabled (the pooler does not keep them)
- row level security stays on the backend side
"""

import os
import urllib.parse

import asyncpg  # type: ignore

# Get database credentials from environment
DB_USER = os.getenv("CLASSIFIEDS_DB_USER")
DB_PASSWORD = os.getenv("CLASSIFIEDS_DB_PASSWORD")
DB_NAME = os.getenv("CLASSIFIEDS_DATABASE_NAME")
DB_HOST = os.getenv("CLASSIFIEDS_DB_HOST")
DB_PORT = os.getenv("CLASSIFIEDS_DB_PORT", "5432")

# Validate required env vars
if not all([DB_USER, DB_PASSWORD, DB_NAME, DB_HOST]):
    raise ValueError("Missing required CLASSIFIEDS database environment variables")

# URL encode password to handle special characters (already validated above)
if DB_PASSWORD is None:
    raise ValueError("DB_PASSWORD cannot be None")
encoded_password = urllib.parse.quote_plus(DB_PASSWORD)

ASYNCPG_URL = f"postgresql://{DB_USER}:{encoded_password}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# Global pool instance
_db_pool: asyncpg.Pool | None = None


async def create_asyncpg_pool():
    """Create the asyncpg pool used by every request handler"""
    return await asyncpg.create_pool(
        ASYNCPG_URL,
        min_size=0,
        max_size=20,
        command_timeout=60,
        # PgBouncer in transaction mode cannot reuse prepared statements
        statement_cache_size=0,
    )


async def create_listener_connection() -> asyncpg.Connection:
    """Dedicated connection for LISTEN, kept outside the pool"""
    return await asyncpg.connect(ASYNCPG_URL)


def get_pool() -> asyncpg.Pool:
    """Get database pool with runtime check"""
    if _db_pool is None:
        raise RuntimeError("Database pool not initialized")
    return _db_pool


if __name__ == "__main__":
    print("Database connection module for the classifieds API")

    import asyncio

    asyncio.run(create_asyncpg_pool())
