from typing import AsyncGenerator, Optional

from fastapi import Request
from redis.asyncio import Redis

from squish.repository import AliasStore
from squish.services import ShortenerContext


async def get_store(request: Request) -> AsyncGenerator[AliasStore, None]:
    yield request.app.state.store


async def get_redis(request: Request) -> AsyncGenerator[Optional[Redis], None]:
    yield request.app.state.redis


def get_context(request: Request) -> ShortenerContext:
    return request.app.state.context
