import logging
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from squish.exceptions import AliasConflict, ExhaustedKeyspace
from squish.helpers import DEFAULT_ALLOWED_SCHEMES, NameGenerator, normalize_url
from squish.models import ShortLink
from squish.repository import AliasStore

logger = logging.getLogger(__name__)

_system_rng = random.SystemRandom()


@dataclass(frozen=True)
class ShortenerContext:
    """Everything a request needs besides its storage handles.

    Built once at startup and shared read-only between requests.
    ``max_attempts`` of None means alias generation retries without limit.
    """

    base_url: str
    generator: NameGenerator
    retention: timedelta = timedelta(days=7)
    allowed_schemes: tuple[str, ...] = DEFAULT_ALLOWED_SCHEMES
    max_attempts: Optional[int] = None
    cache_expiry_seconds: int = 3600
    rng: random.Random = field(default=_system_rng, repr=False)

    @property
    def cache_ttl_seconds(self) -> int:
        return max(1, min(self.cache_expiry_seconds, int(self.retention.total_seconds())))


def cache_key(alias: str) -> str:
    return f"url:{alias}"


def _check_attempts(context: ShortenerContext, attempts: int) -> None:
    if context.max_attempts is not None and attempts >= context.max_attempts:
        logger.error(f"Gave up looking for a free alias after {attempts} attempts")
        raise ExhaustedKeyspace(attempts)


async def generateAlias(
    context: ShortenerContext,
    store: AliasStore,
    rng: Optional[random.Random] = None,
    attempts: int = 0,
) -> tuple[str, int]:
    """Draw candidates until the store reports one as free.

    Returns the alias and the running attempt count. A StorageError from
    the existence check ends the loop immediately.
    """

    rng = rng or context.rng
    while True:
        _check_attempts(context, attempts)
        attempts += 1
        alias = context.generator.generate(rng)
        if not await store.exists(alias):
            return alias, attempts
        logger.debug(f"Alias collision on {alias}, drawing another candidate")


async def shortenLink(
    context: ShortenerContext,
    store: AliasStore,
    redis: Optional[Redis],
    raw_link: str,
    rng: Optional[random.Random] = None,
) -> ShortLink:
    original_url = normalize_url(raw_link, context.allowed_schemes)

    attempts = 0
    while True:
        alias, attempts = await generateAlias(context, store, rng, attempts)
        try:
            await store.insert(original_url, alias)
            break
        except AliasConflict:
            logger.info(f"Lost the race for alias {alias}, retrying with a fresh one")

    await _cache_mapping(context, redis, alias, original_url)
    logger.info(f"URL shortened: {original_url} -> {alias}")

    return ShortLink(link=f"{context.base_url}{alias}")


async def findOriginalURL(store: AliasStore, redis: Optional[Redis], alias: str) -> str:
    cached_url = await _cached_mapping(redis, alias)
    if cached_url:
        logger.info(f"Cache hit - Redirecting: {alias} -> {cached_url}")
        return cached_url

    original_url = await store.resolve(alias)
    logger.info(f"URL found - Redirecting: {alias} -> {original_url}")
    return original_url


async def _cache_mapping(
    context: ShortenerContext, redis: Optional[Redis], alias: str, original_url: str
) -> None:
    if redis is None:
        return
    try:
        await redis.setex(cache_key(alias), context.cache_ttl_seconds, original_url)
    except RedisError as exc:
        logger.warning(f"Could not cache alias {alias}: {exc}")


async def _cached_mapping(redis: Optional[Redis], alias: str) -> Optional[str]:
    if redis is None:
        return None
    try:
        return await redis.get(cache_key(alias))
    except RedisError as exc:
        logger.warning(f"Cache lookup failed for alias {alias}, using the store: {exc}")
        return None
