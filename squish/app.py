import logging
from logging.handlers import TimedRotatingFileHandler

import asyncpg
from fastapi import FastAPI
from redis.asyncio import Redis

from squish.config import Settings
from squish.controller import router
from squish.exceptions import InfraError
from squish.helpers import NameGenerator
from squish.repository import STORAGE_ERRORS, PostgresAliasStore, migrate
from squish.services import ShortenerContext
from squish.sweeper import RetentionSweeper

settings = Settings.from_env()

# Logging
handlers: list[logging.Handler] = [logging.StreamHandler()]
if settings.log_dir is not None:
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    handlers.append(
        TimedRotatingFileHandler(
            filename=settings.log_dir / "app.log",
            when="W0",
            interval=1,
            backupCount=4,
            encoding="utf-8",
        )
    )
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s - %(asctime)s - %(message)s",
    handlers=handlers,
)
logger = logging.getLogger(__name__)

# Set up app
app = FastAPI(title="Squish - URL Shortener")
app.include_router(router)


# App lifecycle
@app.on_event("startup")
async def startup_event():
    generator = NameGenerator.from_files(settings.adjectives_file, settings.nouns_file)

    try:
        app.state.db_pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        await migrate(app.state.db_pool)
    except STORAGE_ERRORS as exc:
        logger.critical(f"Could not prepare the postgres database: {exc!r}")
        raise InfraError(f"database unavailable at startup: {exc}") from exc

    app.state.redis = None
    if settings.redis_url:
        app.state.redis = Redis.from_url(
            settings.redis_url, encoding="utf-8", decode_responses=True
        )

    app.state.store = PostgresAliasStore(
        app.state.db_pool,
        retention=settings.retention,
        acquire_timeout=settings.db_command_timeout,
    )
    app.state.context = ShortenerContext(
        base_url=settings.base_url,
        generator=generator,
        retention=settings.retention,
        allowed_schemes=settings.allowed_schemes,
        max_attempts=settings.max_alias_attempts or None,
        cache_expiry_seconds=settings.cache_expiry_seconds,
    )
    app.state.sweeper = RetentionSweeper(
        app.state.store,
        retention=settings.retention,
        interval=settings.sweep_interval_seconds,
    )
    app.state.sweeper.start()
    logger.info(
        f"Application started with {generator.keyspace} possible aliases, "
        "postgres database and redis initialized"
    )


@app.on_event("shutdown")
async def shutdown_event():
    await app.state.sweeper.stop()
    await app.state.db_pool.close()
    if app.state.redis is not None:
        await app.state.redis.aclose()
    logger.info("Application shut down, postgres database and redis connections closed")
