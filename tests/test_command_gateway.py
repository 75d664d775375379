import asyncio

import pytest

from conftest import FakeSchedulerClient, run
from vine_console.core.exceptions import RemoteError, ValidationError
from vine_console.models.scheduler import SchedulerConfig, SchedulerStatus
from vine_console.services.command_gateway import SchedulerCommandGateway


def test_start_returns_new_status():
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    result = run(gateway.start(45))

    assert client.calls_to("start") == [(45,)]
    assert result.command == "start"
    assert result.status.running is True
    assert result.status.interval_minutes == 45
    assert result.refresh_history is False


def test_start_rejects_interval_below_one():
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    with pytest.raises(ValidationError) as exc_info:
        run(gateway.start(0))
    assert exc_info.value.field == "intervalMinutes"
    assert client.calls == []


def test_stop_when_already_stopped_is_forwarded():
    client = FakeSchedulerClient(status=SchedulerStatus(running=False, interval_minutes=30))
    gateway = SchedulerCommandGateway(client)

    result = run(gateway.stop())

    assert client.count("stop") == 1
    assert result.status.running is False


@pytest.mark.parametrize("start_time", ["25:00", "9:0"])
def test_update_config_rejects_bad_start_time(start_time):
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    with pytest.raises(ValidationError):
        run(gateway.update_config(SchedulerConfig(True, 5, start_time)))
    assert client.calls == []


def test_update_config_sends_normalised_config():
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    result = run(gateway.update_config(SchedulerConfig(True, 5, " 9:00 ")))

    assert client.calls_to("update_config") == [(SchedulerConfig(True, 5, "9:00"),)]
    assert result.status.start_from_time == "9:00"


def test_run_now_invalidates_history():
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    result = run(gateway.run_now())

    assert result.refresh_history is True
    assert result.status is None


def test_remote_failure_is_raised_and_recorded():
    client = FakeSchedulerClient()
    client.responses["start"] = [RemoteError("Quartz scheduler unavailable", 500)]
    gateway = SchedulerCommandGateway(client)

    with pytest.raises(RemoteError, match="Quartz scheduler unavailable"):
        run(gateway.start(30))
    assert gateway.last_error.status_code == 500
    assert gateway.pending == frozenset()


def test_pending_flag_while_outstanding():
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    async def scenario():
        gate = asyncio.Event()
        client.gates["run_now"] = [gate]
        task = asyncio.create_task(gateway.run_now())
        await asyncio.sleep(0)
        during = gateway.is_pending("run_now")
        gate.set()
        await task
        return during

    assert run(scenario()) is True
    assert gateway.is_pending("run_now") is False


def test_overlapping_calls_keep_pending_until_last_returns():
    client = FakeSchedulerClient()
    gateway = SchedulerCommandGateway(client)

    async def scenario():
        gate_first, gate_second = asyncio.Event(), asyncio.Event()
        client.gates["stop"] = [gate_first, gate_second]
        first = asyncio.create_task(gateway.stop())
        second = asyncio.create_task(gateway.stop())
        await asyncio.sleep(0)

        gate_first.set()
        await first
        still_pending = gateway.is_pending("stop")
        pending_names = gateway.pending

        gate_second.set()
        await second
        return still_pending, pending_names

    still_pending, pending_names = run(scenario())
    assert still_pending is True
    assert pending_names == frozenset({"stop"})
    assert gateway.is_pending("stop") is False
    assert gateway.pending == frozenset()
