"""Periodic polling of the remote scheduler status"""

import asyncio
from typing import Callable, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from vine_console.core.exceptions import RemoteError, StaleResponseDiscarded
from vine_console.core.scheduler_client import SchedulerAPIClient
from vine_console.models.scheduler import SchedulerStatus

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5
POLL_JOB_ID = "scheduler_status_poll"


class StatusPoller:
    """Owns the latest known scheduler status and keeps it fresh"""

    def __init__(
        self,
        client: SchedulerAPIClient,
        on_error: Optional[Callable[[RemoteError], None]] = None,
    ):
        self.client = client
        self.on_error = on_error
        self.scheduler = AsyncIOScheduler()

        self.status: Optional[SchedulerStatus] = None
        self.error: Optional[RemoteError] = None
        self._issued = 0
        self._applied = 0
        self._in_flight = 0
        self._poll_tasks: set[asyncio.Task] = set()

    @property
    def fetching(self) -> bool:
        return self._in_flight > 0

    @property
    def polling(self) -> bool:
        return self.scheduler.running

    async def start(self):
        """Fetch once right away, then keep polling every few seconds"""
        await self.refresh()

        self.scheduler.add_job(
            self._scheduled_refresh,
            trigger=IntervalTrigger(seconds=POLL_INTERVAL_SECONDS),
            id=POLL_JOB_ID,
            name="Scheduler status poll",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Status polling started (every {POLL_INTERVAL_SECONDS}s)")

    async def stop(self):
        """Stop the poll job and cancel a poll still waiting on the service"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Status polling stopped")

        tasks = list(self._poll_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _scheduled_refresh(self):
        task = asyncio.current_task()
        self._poll_tasks.add(task)
        try:
            await self.refresh()
        finally:
            self._poll_tasks.discard(task)

    async def refresh(self) -> Optional[SchedulerStatus]:
        """
        Read the scheduler status once.

        Failures are recorded rather than raised so a dead service never
        stops the poll loop; the previous snapshot stays available.

        Returns:
            The snapshot current after this read
        """
        seq = self._next_seq()
        self._in_flight += 1
        try:
            status = await self.client.get_status()
        except RemoteError as e:
            self._record_failure(seq, e)
        else:
            try:
                self._apply(seq, status)
            except StaleResponseDiscarded as e:
                logger.debug(str(e))
        finally:
            self._in_flight -= 1
        return self.status

    def apply_snapshot(self, status: SchedulerStatus) -> None:
        """Install a status returned by a command; it supersedes every earlier read"""
        self._apply(self._next_seq(), status)

    def _next_seq(self) -> int:
        self._issued += 1
        return self._issued

    def _apply(self, seq: int, status: SchedulerStatus) -> None:
        if seq < self._applied:
            raise StaleResponseDiscarded("status", seq, self._applied)
        self._applied = seq
        self.status = status
        self.error = None

    def _record_failure(self, seq: int, error: RemoteError) -> None:
        logger.warning(f"Scheduler status poll failed: {error.message}")
        if seq < self._applied:
            # a later read already completed
            return
        self._applied = seq
        previous = self.error
        self.error = error
        if self.on_error and (previous is None or previous.message != error.message):
            self.on_error(error)
