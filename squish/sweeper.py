import asyncio
import logging
from contextlib import suppress
from datetime import timedelta
from typing import Optional

from squish.exceptions import StorageError
from squish.repository import AliasStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Periodically deletes links older than the retention window.

    Storage failures are logged and the next tick tries again; only ``stop``
    ends the loop.
    """

    def __init__(self, store: AliasStore, retention: timedelta, interval: float):
        self.store = store
        self.retention = retention
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[int]:
        try:
            removed = await self.store.purge_expired(self.retention)
        except StorageError as exc:
            logger.error(f"Link cleanup failed, retrying in {self.interval}s: {exc}")
            return None

        logger.info(f"Cleaned up {removed} old links.")
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("Unexpected error during link cleanup, retrying next tick")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="retention-sweeper")
        logger.info(
            f"Retention sweeper started: every {self.interval}s, retention {self.retention}"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Retention sweeper stopped")
