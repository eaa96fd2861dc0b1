import asyncio
import contextlib
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from paymail.core.core import Service
from paymail.core.modules.session.models import PurgeResult
from paymail.utils import now_ms

logger = structlog.get_logger(__name__)


class CleanupService(Service):
    """Periodically purges expired sessions.

    Storage hygiene only: expired sessions are already refused and evicted on read.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._task: asyncio.Task[None] | None = None

    async def on_start(self) -> None:
        self._task = asyncio.create_task(self._run_forever(self.core.config.session_cleanup_interval))
        logger.debug("cleanup_scheduler_started", interval=self.core.config.session_cleanup_interval)

    async def on_stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def run_once(self) -> PurgeResult:
        result = await self.core.services.session.purge_expired(now_ms())
        logger.info("session_cleanup_completed", deleted=result.deleted, failed=result.failed)
        return result

    async def _run_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.run_once()
            except Exception:
                # A failed run must not stop the schedule
                logger.exception("session_cleanup_failed")
