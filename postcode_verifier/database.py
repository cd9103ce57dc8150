"""
Database connection and schema management using asyncpg.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg
from asyncpg import Pool, Connection

from postcode_verifier.config import settings

logger = logging.getLogger(__name__)


# verify_logs is append-only: updates and deletes are silently discarded.
SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id            SERIAL PRIMARY KEY,
    username      TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS verify_logs (
    id       BIGSERIAL PRIMARY KEY,
    user_id  TEXT NOT NULL,
    postcode TEXT NOT NULL,
    suburb   TEXT NOT NULL,
    state    TEXT NOT NULL,
    success  BOOLEAN NOT NULL,
    error    TEXT,
    ts       TIMESTAMPTZ NOT NULL,
    lat      DOUBLE PRECISION,
    lng      DOUBLE PRECISION
);

CREATE INDEX IF NOT EXISTS idx_verify_logs_user_ts ON verify_logs (user_id, ts DESC);

CREATE OR REPLACE RULE verify_logs_no_update AS
    ON UPDATE TO verify_logs DO INSTEAD NOTHING;

CREATE OR REPLACE RULE verify_logs_no_delete AS
    ON DELETE TO verify_logs DO INSTEAD NOTHING;
"""

# Serializes schema setup across workers starting at the same time
SCHEMA_LOCK_ID = 7_140_301


async def apply_schema(conn: Connection) -> None:
    """
    Apply SCHEMA on a connection that is already inside a transaction.

    The advisory lock is held until that transaction ends, so concurrent
    callers run the DDL one after another.
    """
    await conn.execute("SELECT pg_advisory_xact_lock($1)", SCHEMA_LOCK_ID)
    await conn.execute(SCHEMA)


class Database:
    """Async PostgreSQL database connection pool manager."""
    
    def __init__(self):
        self._pool: Optional[Pool] = None
        self._lock = asyncio.Lock()
    
    async def connect(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return
            
            dsn = settings.database_url
            if dsn.startswith("postgresql+asyncpg://"):
                dsn = dsn.replace("postgresql+asyncpg://", "postgresql://", 1)
            
            logger.info("Connecting to PostgreSQL...")
            
            self._pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout,
                server_settings={
                    'application_name': settings.app_name,
                }
            )
            
            logger.info("PostgreSQL connection pool created successfully")
    
    async def disconnect(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is None:
                return
            
            logger.info("Closing PostgreSQL connection pool...")
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")
    
    async def init_schema(self) -> None:
        """Create tables, indexes and append-only rules if missing."""
        async with self.transaction() as conn:
            await apply_schema(conn)
        logger.info("Database schema is up to date")
    
    @property
    def pool(self) -> Pool:
        """Get the connection pool."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool
    
    async def execute(self, query: str, *args) -> str:
        """Execute a query and return status."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)
    
    async def fetch(self, query: str, *args) -> list:
        """Fetch all rows from a query."""
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)
    
    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        """Fetch a single row from a query."""
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)
    
    async def fetchval(self, query: str, *args):
        """Fetch a single value from a query."""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)
    
    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """Acquire a connection from the pool."""
        async with self.pool.acquire() as conn:
            yield conn
    
    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """Get a connection with transaction context."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn
    
    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


# Global database instance
database = Database()


async def get_db() -> Database:
    """Dependency injection for database access."""
    return database
