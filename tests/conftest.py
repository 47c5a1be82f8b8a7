import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from squish.config import DATA_DIR
from squish.exceptions import AliasConflict, NotFound
from squish.helpers import NameGenerator
from squish.models import Link
from squish.repository import AliasStore
from squish.services import ShortenerContext

TEST_BASE_URL = "http://x/"
RETENTION = timedelta(days=7)


class InMemoryAliasStore(AliasStore):
    """AliasStore fake with a movable clock.

    ``yield_between_calls`` makes every operation hand control back to the
    event loop first, so concurrent shortens interleave between ``exists``
    and ``insert`` the way racing requests would.
    """

    def __init__(self, retention=RETENTION, now=None, yield_between_calls=False):
        self.links: dict[str, Link] = {}
        self.retention = retention
        self.now = now or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.yield_between_calls = yield_between_calls
        self.conflicts = 0
        self._next_id = 1

    async def _pause(self):
        if self.yield_between_calls:
            await asyncio.sleep(0)

    def _alive(self, link: Link) -> bool:
        return link.created_at > self.now - self.retention

    def seed(self, original_url: str, alias: str, age: timedelta = timedelta(0)) -> Link:
        link = Link(
            id=self._next_id,
            original_url=original_url,
            short_alias=alias,
            created_at=self.now - age,
        )
        self._next_id += 1
        self.links[alias] = link
        return link

    async def exists(self, alias):
        await self._pause()
        link = self.links.get(alias)
        return link is not None and self._alive(link)

    async def insert(self, original_url, alias):
        await self._pause()
        if alias in self.links:
            self.conflicts += 1
            raise AliasConflict(alias)
        self.seed(original_url, alias)

    async def resolve(self, alias):
        await self._pause()
        link = self.links.get(alias)
        if link is None or not self._alive(link):
            raise NotFound("Original URL", alias)
        return link.original_url

    async def purge_expired(self, retention_window):
        await self._pause()
        cutoff = self.now - retention_window
        expired = [alias for alias, link in self.links.items() if link.created_at < cutoff]
        for alias in expired:
            del self.links[alias]
        return len(expired)


# Fixtures
@pytest.fixture
def generator():
    return NameGenerator.from_files(DATA_DIR / "adjectives.txt", DATA_DIR / "animals.txt")


@pytest.fixture
def context(generator):
    return ShortenerContext(
        base_url=TEST_BASE_URL,
        generator=generator,
        retention=RETENTION,
        rng=random.Random(1234),
    )


@pytest.fixture
def store():
    return InMemoryAliasStore()
