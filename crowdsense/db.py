# path: crowdsense/db.py
"""Database connection helper using asyncpg.

The service reads from PostgreSQL through an async connection pool. The pool
is created lazily on first use and handed to the store adapter explicitly;
there is no module-level instance.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

logger = logging.getLogger("crowdsense.db")


class Database:
    """Manages a connection pool to PostgreSQL using asyncpg."""

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: Optional[float] = None,
    ) -> None:
        # async SQLAlchemy URLs -> asyncpg URL
        self.dsn = str(dsn).replace("postgresql+asyncpg", "postgresql")
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Create the connection pool if it doesn't already exist.

        Concurrent first callers share one pool; the pool check is repeated
        under the lock.
        """
        if self._pool is not None:
            return
        async with self._connect_lock:
            if self._pool is not None:
                return
            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
            )
            logger.info(
                "database pool connected (min=%d, max=%d, timeout=%ss)",
                self.min_size,
                self.max_size,
                self.command_timeout,
            )

    async def disconnect(self) -> None:
        """Close the pool and release all connections."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("database pool disconnected")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection from the pool, connecting first if needed."""
        if self._pool is None:
            await self.connect()
        assert self._pool is not None
        async with self._pool.acquire() as conn:
            yield conn
