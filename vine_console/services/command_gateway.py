"""Lifecycle commands sent to the remote scheduler"""

from collections import Counter
from dataclasses import dataclass
from typing import Optional
import logging

from vine_console.core.exceptions import RemoteError
from vine_console.core.scheduler_client import SchedulerAPIClient
from vine_console.core.validation import validate_scheduler_config, validate_start_interval
from vine_console.models.scheduler import SchedulerConfig, SchedulerStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a successful command and the reads it invalidates"""
    command: str
    status: Optional[SchedulerStatus] = None
    refresh_history: bool = False
    message: str = ""


class SchedulerCommandGateway:
    """Issues start/stop/config/run-now and reports what must be re-read"""

    START = "start"
    STOP = "stop"
    UPDATE_CONFIG = "update_config"
    RUN_NOW = "run_now"

    def __init__(self, client: SchedulerAPIClient):
        self.client = client
        self._in_flight: Counter = Counter()
        self.last_error: Optional[RemoteError] = None

    @property
    def pending(self) -> frozenset:
        """Commands with at least one call still outstanding"""
        return frozenset(command for command, count in self._in_flight.items() if count > 0)

    def is_pending(self, command: str) -> bool:
        return self._in_flight[command] > 0

    async def start(self, interval_minutes: int) -> CommandResult:
        interval = validate_start_interval(interval_minutes)
        status = await self._submit(self.START, self.client.start(interval))
        logger.info(f"Scheduler started with interval {interval} min")
        return CommandResult(self.START, status=status, message="Scheduler started successfully.")

    async def stop(self) -> CommandResult:
        status = await self._submit(self.STOP, self.client.stop())
        logger.info("Scheduler stopped")
        return CommandResult(self.STOP, status=status, message="Scheduler stopped successfully.")

    async def update_config(self, config: SchedulerConfig) -> CommandResult:
        """Change interval, enabled flag or start time. A run already in progress is unaffected."""
        config = validate_scheduler_config(config)
        status = await self._submit(self.UPDATE_CONFIG, self.client.update_config(config))
        logger.info(
            f"Scheduler config updated: enabled={config.enabled}, "
            f"interval={config.interval_minutes}, start={config.start_from_time}"
        )
        return CommandResult(
            self.UPDATE_CONFIG,
            status=status,
            message="Scheduler configuration updated successfully.",
        )

    async def run_now(self) -> CommandResult:
        ack = await self._submit(self.RUN_NOW, self.client.run_now())
        logger.info(f"Manual job run triggered: {ack}")
        return CommandResult(
            self.RUN_NOW,
            refresh_history=True,
            message="Job triggered successfully.",
        )

    async def _submit(self, command: str, call):
        self._in_flight[command] += 1
        try:
            result = await call
        except RemoteError as e:
            logger.error(f"Scheduler command '{command}' failed: {e.message}")
            self.last_error = e
            raise
        finally:
            self._in_flight[command] -= 1
        self.last_error = None
        return result
