"""
Async SQLite connection pool with aiosqlite.

Provides connection management with proper async context handling.

Connections run in autocommit mode; write transactions are opened
explicitly with ``BEGIN IMMEDIATE``, which takes the database write lock
up front. A second writer waits (up to ``busy_timeout``, or the caller's
timeout when one is given) until the first commits or rolls back. Readers
in WAL mode never wait on writers.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from slabstock.config import get_logger, get_settings
from slabstock.core.exceptions import DatabaseError

logger = get_logger(__name__)


class ConnectionPool:
    """
    Async SQLite connection pool.

    Manages a pool of connections with configurable size.
    """

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._initialized:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            for _ in range(self.pool_size):
                conn = await self._create_connection()
                self._connections.append(conn)
                await self._pool.put(conn)

            self._initialized = True
            logger.info(
                "connection_pool_initialized",
                db_path=str(self.db_path),
                pool_size=self.pool_size,
            )

    async def _create_connection(self) -> aiosqlite.Connection:
        """Create a new database connection with optimized settings."""
        conn = await aiosqlite.connect(self.db_path, isolation_level=None)

        # WAL keeps plain reads from blocking on the write lock
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA synchronous=NORMAL")
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        await conn.execute("PRAGMA foreign_keys=ON")

        conn.row_factory = aiosqlite.Row

        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Acquire a connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                await conn.execute(...)
        """
        if not self._initialized:
            await self.initialize()

        conn = await self._pool.get()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                # Never hand a connection with an open transaction back to the pool
                await conn.rollback()
            await self._pool.put(conn)

    @asynccontextmanager
    async def transaction(
        self, timeout: float | None = None
    ) -> AsyncIterator[aiosqlite.Connection]:
        """
        Acquire a connection with an exclusive write transaction.

        Commits on success, rolls back on any exception including
        cancellation. Driver errors surface as DatabaseError.

        Args:
            timeout: Seconds to wait for the write lock. SQLite's busy
                handler gives up at that point and the wait raises
                TimeoutError. None waits up to ``busy_timeout``.
        """
        async with self.acquire() as conn:
            try:
                await self._begin_immediate(conn, timeout)
                yield conn
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                logger.error("transaction_failed", error=str(e))
                raise DatabaseError("transaction", str(e)) from e
            except BaseException:
                await conn.rollback()
                raise

    async def _begin_immediate(
        self, conn: aiosqlite.Connection, timeout: float | None
    ) -> None:
        if timeout is None:
            await conn.execute("BEGIN IMMEDIATE")
            return

        # Task cancellation does not reach the driver thread; only the busy
        # handler ends a lock wait.
        wait_ms = max(1, min(self.busy_timeout, int(timeout * 1000)))
        await conn.execute(f"PRAGMA busy_timeout={wait_ms}")
        try:
            await conn.execute("BEGIN IMMEDIATE")
        except aiosqlite.OperationalError as e:
            if "locked" not in str(e) and "busy" not in str(e):
                raise
            logger.warning("write_lock_timeout", timeout=timeout, db_path=str(self.db_path))
            raise TimeoutError(f"write lock not acquired within {timeout}s") from e
        finally:
            await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")

    async def close(self) -> None:
        """Close all connections in the pool."""
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._pool = asyncio.Queue(maxsize=self.pool_size)
            self._initialized = False
            logger.info("connection_pool_closed")


# Global connection pool
_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Get or create the global connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = ConnectionPool(
            db_path=settings.storage.db_path,
            pool_size=settings.storage.pool_size,
            busy_timeout=settings.storage.busy_timeout,
        )
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    """
    Get a connection from the global pool.

    Convenience wrapper for common usage.
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction(
    timeout: float | None = None,
) -> AsyncIterator[aiosqlite.Connection]:
    """
    Get a connection with transaction context.

    Convenience wrapper for transactional operations; ``timeout`` bounds
    the wait for the write lock.
    """
    pool = await get_pool()
    async with pool.transaction(timeout) as conn:
        yield conn
