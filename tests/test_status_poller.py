import asyncio

from conftest import FakeSchedulerClient, run
from vine_console.core.exceptions import RemoteError
from vine_console.models.scheduler import SchedulerStatus
from vine_console.services.status_poller import POLL_INTERVAL_SECONDS, POLL_JOB_ID, StatusPoller

STOPPED = SchedulerStatus(running=False, interval_minutes=30)
RUNNING = SchedulerStatus(running=True, interval_minutes=45)


def test_unknown_before_first_fetch():
    poller = StatusPoller(FakeSchedulerClient())
    assert poller.status is None
    assert poller.fetching is False
    assert poller.error is None


def test_refresh_replaces_snapshot():
    client = FakeSchedulerClient(status=RUNNING)
    poller = StatusPoller(client)

    assert run(poller.refresh()) == RUNNING
    assert poller.status is RUNNING
    assert poller.error is None


def test_failure_keeps_previous_snapshot():
    client = FakeSchedulerClient(status=STOPPED)
    errors = []
    poller = StatusPoller(client, on_error=errors.append)

    async def scenario():
        await poller.refresh()
        client.responses["get_status"] = [RemoteError("boom", 500)]
        return await poller.refresh()

    assert run(scenario()) is STOPPED
    assert poller.status is STOPPED
    assert poller.error.message == "boom"
    assert [e.message for e in errors] == ["boom"]


def test_repeated_identical_failures_notify_once():
    client = FakeSchedulerClient()
    errors = []
    poller = StatusPoller(client, on_error=errors.append)
    client.responses["get_status"] = [RemoteError("down"), RemoteError("down"), RemoteError("worse")]

    async def scenario():
        for _ in range(3):
            await poller.refresh()

    run(scenario())
    assert [e.message for e in errors] == ["down", "worse"]
    assert client.count("get_status") == 3


def test_success_clears_error():
    client = FakeSchedulerClient(status=STOPPED)
    poller = StatusPoller(client)
    client.responses["get_status"] = [RemoteError("down")]

    async def scenario():
        await poller.refresh()
        await poller.refresh()

    run(scenario())
    assert poller.error is None
    assert poller.status is STOPPED


def test_later_request_wins_when_answered_first():
    client = FakeSchedulerClient()
    poller = StatusPoller(client)

    async def scenario():
        gate_a, gate_b = asyncio.Event(), asyncio.Event()
        client.gates["get_status"] = [gate_a, gate_b]
        client.responses["get_status"] = [STOPPED, RUNNING]

        task_a = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0)
        task_b = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0)
        assert poller.fetching

        gate_b.set()
        await task_b
        gate_a.set()
        await task_a

    run(scenario())
    assert poller.status is RUNNING
    assert poller.fetching is False


def test_earlier_failure_arriving_late_is_ignored():
    client = FakeSchedulerClient()
    poller = StatusPoller(client)

    async def scenario():
        gate_a, gate_b = asyncio.Event(), asyncio.Event()
        client.gates["get_status"] = [gate_a, gate_b]
        client.responses["get_status"] = [RemoteError("late"), RUNNING]

        task_a = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0)
        task_b = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0)
        gate_b.set()
        await task_b
        gate_a.set()
        await task_a

    run(scenario())
    assert poller.status is RUNNING
    assert poller.error is None


def test_command_snapshot_supersedes_outstanding_read():
    client = FakeSchedulerClient()
    poller = StatusPoller(client)

    async def scenario():
        gate = asyncio.Event()
        client.gates["get_status"] = [gate]
        client.responses["get_status"] = [STOPPED]

        task = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0)
        poller.apply_snapshot(RUNNING)
        gate.set()
        await task

    run(scenario())
    assert poller.status is RUNNING


def test_start_fetches_immediately_and_schedules_poll():
    client = FakeSchedulerClient(status=RUNNING)
    poller = StatusPoller(client)

    async def scenario():
        await poller.start()
        job = poller.scheduler.get_job(POLL_JOB_ID)
        polling = poller.polling
        await poller.stop()
        return job, polling

    job, polling = run(scenario())
    assert client.count("get_status") == 1
    assert poller.status is RUNNING
    assert polling is True
    assert job.trigger.interval.total_seconds() == POLL_INTERVAL_SECONDS
    assert job.max_instances == 1
    assert poller.polling is False


def test_stop_cancels_outstanding_scheduled_poll():
    client = FakeSchedulerClient(status=RUNNING)
    poller = StatusPoller(client)

    async def scenario():
        await poller.start()
        client.gates["get_status"] = [asyncio.Event()]
        task = asyncio.create_task(poller._scheduled_refresh())
        await asyncio.sleep(0)
        assert poller.fetching

        await poller.stop()
        return task

    task = run(scenario())
    assert task.cancelled()
    assert poller.fetching is False
    assert poller.status is RUNNING
