"""Alias storage.

``AliasStore`` is the contract the shortening service and the retention
sweeper depend on. ``PostgresAliasStore`` implements it on top of an asyncpg
pool, acquiring a fresh connection for every operation so no state is held
between requests.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

import asyncpg
from asyncpg import Connection, Pool

from squish.exceptions import AliasConflict, NotFound, StorageError
from squish.models import Link

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

CREATE_LINKS_TABLE = """
CREATE TABLE IF NOT EXISTS links (
    id SERIAL PRIMARY KEY,
    original_link TEXT NOT NULL,
    short_link TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS links_created_at_idx ON links (created_at);
"""


class AliasStore(ABC):
    """Durable alias -> original URL mapping.

    Methods:
        exists(alias) -> bool:
            True iff a non-expired link with this alias is stored.

        insert(original_url, alias) -> None:
            Store a new link stamped with the current time.
            Raises AliasConflict if the alias was taken concurrently.

        resolve(alias) -> str:
            Original URL of a non-expired alias. Raises NotFound otherwise.

        purge_expired(retention_window) -> int:
            Delete links older than ``now - retention_window``.

    Every method raises StorageError on connectivity, timeout or query failure.
    """

    @abstractmethod
    async def exists(self, alias: str) -> bool:
        pass

    @abstractmethod
    async def insert(self, original_url: str, alias: str) -> None:
        pass

    @abstractmethod
    async def resolve(self, alias: str) -> str:
        pass

    @abstractmethod
    async def purge_expired(self, retention_window: timedelta) -> int:
        pass


def deleted_count(status: str) -> int:
    """Parse the row count out of a command status such as ``DELETE 3``."""

    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        logger.warning(f"Unexpected command status from purge: {status!r}")
        return 0


class PostgresAliasStore(AliasStore):
    def __init__(self, pool: Pool, retention: timedelta, acquire_timeout: float | None = None):
        self.pool = pool
        self.retention = retention
        self.acquire_timeout = acquire_timeout

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[Connection]:
        try:
            async with self.pool.acquire(timeout=self.acquire_timeout) as conn:
                yield conn
        except asyncpg.UniqueViolationError:
            raise
        except STORAGE_ERRORS as exc:
            logger.error(f"Storage operation '{operation}' failed: {exc!r}")
            raise StorageError(operation, str(exc) or type(exc).__name__) from exc

    async def exists(self, alias: str) -> bool:
        async with self._connection("exists") as conn:
            result = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM links
                    WHERE short_link = $1 AND created_at > CURRENT_TIMESTAMP - $2::interval
                )
                """,
                alias,
                self.retention,
            )
        return bool(result)

    async def insert(self, original_url: str, alias: str) -> None:
        try:
            async with self._connection("insert") as conn:
                await conn.execute(
                    """
                    INSERT INTO links (original_link, short_link)
                    VALUES ($1, $2)
                    """,
                    original_url,
                    alias,
                )
        except asyncpg.UniqueViolationError as exc:
            raise AliasConflict(alias) from exc

    async def resolve(self, alias: str) -> str:
        async with self._connection("resolve") as conn:
            result = await conn.fetchrow(
                """
                SELECT id, original_link, short_link, created_at FROM links
                WHERE short_link = $1 AND created_at > CURRENT_TIMESTAMP - $2::interval
                """,
                alias,
                self.retention,
            )

        if result is None:
            raise NotFound("Original URL", alias)

        link = Link(
            id=result["id"],
            original_url=result["original_link"],
            short_alias=result["short_link"],
            created_at=result["created_at"],
        )
        return link.original_url

    async def purge_expired(self, retention_window: timedelta) -> int:
        async with self._connection("purge_expired") as conn:
            status = await conn.execute(
                """
                DELETE FROM links WHERE created_at < CURRENT_TIMESTAMP - $1::interval
                """,
                retention_window,
            )
        return deleted_count(status)


async def migrate(pool: Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute(CREATE_LINKS_TABLE)
