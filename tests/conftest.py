import asyncio
from datetime import datetime, timedelta

import pytest

from vine_console.config import Settings
from vine_console.core.notifications import NotificationCenter
from vine_console.models.scheduler import HistoryPage, JobExecution, SchedulerStatus
from vine_console.services.controller import ConsoleContext, SchedulerController


def make_executions(count, start=datetime(2024, 5, 1, 12, 0, 0)):
    return [
        JobExecution(
            id=count - i,
            start_time=start - timedelta(minutes=30 * i),
            end_time=start - timedelta(minutes=30 * i) + timedelta(seconds=42),
            status="SUCCESS",
            records_processed=i,
        )
        for i in range(count)
    ]


class FakeSchedulerClient:
    """
    In-memory stand-in for SchedulerAPIClient.

    responses[name] queues results (or exceptions) per call; gates[name]
    queues asyncio.Events a call waits on before answering, which lets a
    test decide the order responses arrive in.
    """

    def __init__(self, status=None, executions=None):
        self.status = status or SchedulerStatus(running=False, interval_minutes=30)
        self.executions = executions if executions is not None else make_executions(5)
        self.responses = {}
        self.gates = {}
        self.calls = []
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True

    async def aclose(self):
        self.closed = True

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    def calls_to(self, name):
        return [call[1:] for call in self.calls if call[0] == name]

    async def _respond(self, name, default, *args):
        self.calls.append((name, *args))
        gates = self.gates.get(name)
        gate = gates.pop(0) if gates else None
        queued = self.responses.get(name)
        result = queued.pop(0) if queued else None
        if gate is not None:
            await gate.wait()
        if result is None:
            result = default()
        if isinstance(result, Exception):
            raise result
        return result

    async def get_status(self):
        return await self._respond("get_status", lambda: self.status)

    async def start(self, interval_minutes):
        def started():
            self.status = self.status.model_copy(
                update={"running": True, "interval_minutes": interval_minutes}
            )
            return self.status
        return await self._respond("start", started, interval_minutes)

    async def stop(self):
        def stopped():
            self.status = self.status.model_copy(update={"running": False, "next_run_time": None})
            return self.status
        return await self._respond("stop", stopped)

    async def update_config(self, config):
        def updated():
            self.status = self.status.model_copy(
                update={
                    "running": config.enabled,
                    "interval_minutes": config.interval_minutes,
                    "start_from_time": config.start_from_time,
                }
            )
            return self.status
        return await self._respond("update_config", updated, config)

    async def run_now(self):
        return await self._respond("run_now", lambda: "Job triggered successfully")

    def _page(self, history_filter):
        start = history_filter.page * history_filter.page_size
        return HistoryPage(
            items=self.executions[start:start + history_filter.page_size],
            page=history_filter.page,
            page_size=history_filter.page_size,
            total_elements=len(self.executions),
        )

    async def get_history(self, history_filter):
        return await self._respond("get_history", lambda: self._page(history_filter), history_filter)

    async def get_latest(self, limit):
        return await self._respond(
            "get_latest",
            lambda: HistoryPage(items=self.executions[:limit], page=0, page_size=limit,
                                total_elements=len(self.executions)),
            limit,
        )


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def fake_client():
    return FakeSchedulerClient()


@pytest.fixture
def app_settings():
    return Settings(VINE_API_BASE_URL="http://vine.test", HISTORY_PAGE_SIZE=20)


@pytest.fixture
def controller(fake_client, app_settings):
    context = ConsoleContext(
        settings=app_settings,
        client=fake_client,
        notifications=NotificationCenter(backlog=20),
    )
    return SchedulerController(context)
