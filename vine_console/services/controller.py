"""Composition root of the scheduler console: one view, one action surface"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging

from vine_console.config import Settings, settings as default_settings
from vine_console.core import formatting
from vine_console.core.exceptions import RemoteError
from vine_console.core.notifications import NotificationCenter
from vine_console.core.scheduler_client import SchedulerAPIClient
from vine_console.core.validation import validate_history_filter
from vine_console.models.scheduler import (
    UNSET,
    HistoryFilter,
    HistoryPage,
    SchedulerConfig,
    SchedulerStatus,
)
from vine_console.services.command_gateway import CommandResult, SchedulerCommandGateway
from vine_console.services.history_engine import HistoryQueryEngine
from vine_console.services.status_poller import StatusPoller

logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class ConsoleContext:
    """Everything the console shares between its collaborators"""
    settings: Settings
    client: SchedulerAPIClient
    notifications: NotificationCenter

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "ConsoleContext":
        return cls(
            settings=app_settings,
            client=SchedulerAPIClient(
                app_settings.VINE_API_BASE_URL,
                api_prefix=app_settings.API_PREFIX,
                timeout=app_settings.REQUEST_TIMEOUT_SECONDS,
            ),
            notifications=NotificationCenter(backlog=app_settings.NOTIFICATION_BACKLOG),
        )


@dataclass(frozen=True)
class ConsoleView:
    """Read-only snapshot handed to presentation code"""
    state: ControllerState
    status: Optional[SchedulerStatus]
    history: Optional[HistoryPage]
    history_filter: HistoryFilter
    status_fetching: bool = False
    history_fetching: bool = False
    pending_commands: frozenset = field(default_factory=frozenset)
    status_error: Optional[str] = None
    history_error: Optional[str] = None
    command_error: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return any((self.status_error, self.history_error, self.command_error))

    @property
    def schedule_summary(self) -> str:
        return formatting.describe_schedule(self.status)

    @property
    def next_run(self) -> str:
        return formatting.describe_next_run(self.status)

    @property
    def last_run(self) -> str:
        return formatting.describe_last_run(self.status)

    @property
    def last_run_severity(self) -> formatting.Severity:
        return formatting.status_severity(self.status.last_run_status if self.status else None)

    def rows(self) -> list[dict]:
        """History rows with their derived display columns"""
        if self.history is None:
            return []
        return [
            {
                "execution": execution,
                "duration": formatting.format_duration(execution.start_time, execution.end_time),
                "severity": formatting.status_severity(execution.status),
            }
            for execution in self.history.items
        ]


class SchedulerController:
    """
    Keeps status, history and commands of the remote scheduler consistent.

    Construct it when the console view opens and close it when the view goes
    away; closing stops the poller and releases the HTTP client.
    """

    def __init__(self, context: ConsoleContext):
        self.context = context
        self.notifications = context.notifications
        self.poller = StatusPoller(context.client, on_error=self._on_status_error)
        self.history = HistoryQueryEngine(context.client)
        self.commands = SchedulerCommandGateway(context.client)
        self.history_filter = HistoryFilter(page_size=context.settings.HISTORY_PAGE_SIZE)
        self._started = False

    @classmethod
    def from_settings(cls, app_settings: Optional[Settings] = None) -> "SchedulerController":
        return cls(ConsoleContext.from_settings(app_settings or default_settings))

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def state(self) -> ControllerState:
        if not self._started:
            return ControllerState.UNINITIALIZED
        if self.poller.status is None:
            return ControllerState.LOADING
        return ControllerState.READY

    async def start(self):
        """Open the client, start polling and load the first history page"""
        if self._started:
            return
        self.context.client.open()
        self._started = True
        logger.info("Scheduler console starting")
        await self.poller.start()
        await self._refresh_history(self.history_filter)

    async def close(self):
        if not self._started:
            return
        await self.poller.stop()
        await self.context.client.aclose()
        self._started = False
        logger.info("Scheduler console closed")

    def view(self) -> ConsoleView:
        return ConsoleView(
            state=self.state,
            status=self.poller.status,
            history=self.history.page,
            history_filter=self.history_filter,
            status_fetching=self.poller.fetching,
            history_fetching=self.history.fetching,
            pending_commands=self.commands.pending,
            status_error=self.poller.error.message if self.poller.error else None,
            history_error=self.history.error.message if self.history.error else None,
            command_error=self.commands.last_error.message if self.commands.last_error else None,
        )

    # ============ History ============

    async def change_filter(self, page=UNSET, page_size=UNSET, days_window=UNSET) -> Optional[HistoryPage]:
        """
        Select a new history page/size/days window and re-query.

        Raises:
            ValidationError: the resulting filter is out of bounds; the
                current filter is left as it was
        """
        new_filter = self.history_filter.with_changes(
            page=page, page_size=page_size, days_window=days_window
        )
        validate_history_filter(new_filter)
        self.history_filter = new_filter
        return await self._refresh_history(new_filter)

    async def refresh_history(self) -> Optional[HistoryPage]:
        return await self._refresh_history(self.history_filter)

    async def latest_executions(self, limit: int = 10) -> Optional[HistoryPage]:
        try:
            return await self.history.latest(limit)
        except RemoteError as e:
            self.notifications.error(f"Failed to load latest executions: {e.message}")
            return None

    async def _refresh_history(self, history_filter: HistoryFilter) -> Optional[HistoryPage]:
        try:
            return await self.history.query(history_filter)
        except RemoteError as e:
            if self.history.error is e:
                self.notifications.error(f"Failed to load job history: {e.message}")
            return None

    # ============ Status ============

    async def refresh_status(self) -> Optional[SchedulerStatus]:
        return await self.poller.refresh()

    def _on_status_error(self, error: RemoteError) -> None:
        self.notifications.error(f"Failed to load scheduler status: {error.message}")

    # ============ Commands ============

    async def start_scheduler(self, interval_minutes: Optional[int] = None) -> Optional[CommandResult]:
        if interval_minutes is None:
            interval_minutes = self.context.settings.DEFAULT_INTERVAL_MINUTES
        return await self._run_command(self.commands.start(interval_minutes), "start scheduler")

    async def stop_scheduler(self) -> Optional[CommandResult]:
        return await self._run_command(self.commands.stop(), "stop scheduler")

    async def update_config(self, config: SchedulerConfig) -> Optional[CommandResult]:
        return await self._run_command(
            self.commands.update_config(config), "update scheduler configuration"
        )

    async def run_now(self) -> Optional[CommandResult]:
        return await self._run_command(self.commands.run_now(), "trigger job manually")

    async def _run_command(self, call, action: str) -> Optional[CommandResult]:
        """
        Await a gateway command, then re-read whatever it invalidated.

        Validation errors propagate. A remote failure is reported and nothing
        is refreshed, since nothing is known to have changed.
        """
        try:
            result = await call
        except RemoteError as e:
            self.notifications.error(f"Failed to {action}: {e.message}")
            return None

        if result.status is not None:
            self.poller.apply_snapshot(result.status)
        self.notifications.success(result.message)

        await self.poller.refresh()
        if result.refresh_history:
            self.history_filter = self.history_filter.first_page()
            await self._refresh_history(self.history_filter)
        return result
