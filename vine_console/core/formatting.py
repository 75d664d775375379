"""Display helpers derived from scheduler data. Nothing here is stored."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from vine_console.models.scheduler import ExecutionStatus, RunStatus, SchedulerStatus


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    NEUTRAL = "neutral"


_SEVERITY_BY_STATUS = {
    "SUCCESS": Severity.SUCCESS,
    "FAILURE": Severity.ERROR,
    "ERROR": Severity.ERROR,
    "RUNNING": Severity.INFO,
}


def status_severity(status: Union[ExecutionStatus, RunStatus, str, None]) -> Severity:
    """Map an execution or run status to the colour class used by the console"""
    if status is None:
        return Severity.NEUTRAL
    key = status.value if isinstance(status, Enum) else str(status).upper()
    return _SEVERITY_BY_STATUS.get(key, Severity.NEUTRAL)


def format_duration(start: Optional[datetime], end: Optional[datetime]) -> str:
    """
    Human-readable elapsed time between two timestamps.

    Returns "N/A" while either end is missing (e.g. the run is still going).
    """
    if start is None or end is None:
        return "N/A"

    millis = int((end - start).total_seconds() * 1000)
    if millis < 1000:
        return f"{millis}ms"
    if millis < 60_000:
        return f"{millis // 1000}s"
    minutes, remainder = divmod(millis, 60_000)
    return f"{minutes}m {remainder // 1000}s"


def format_timestamp(value: Optional[datetime], missing: str = "N/A") -> str:
    if value is None:
        return missing
    return value.strftime("%Y-%m-%d %H:%M:%S")


def describe_schedule(status: Optional[SchedulerStatus]) -> str:
    if status is None:
        return "Unknown"
    if status.running:
        return f"Running every {status.interval_minutes} minutes"
    return "Stopped"


def describe_next_run(status: Optional[SchedulerStatus]) -> str:
    """Next run is only meaningful while the scheduler is running"""
    if status is None or not status.running:
        return "N/A"
    return format_timestamp(status.next_run_time)


def describe_last_run(status: Optional[SchedulerStatus]) -> str:
    if status is None:
        return "N/A"
    return format_timestamp(status.last_run_time, missing="Never")
