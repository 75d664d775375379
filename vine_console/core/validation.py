"""Client-side checks run before any scheduler request is sent"""

import re
from typing import Optional

from vine_console.core.exceptions import ValidationError
from vine_console.models.scheduler import HistoryFilter, SchedulerConfig

START_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100
MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 1440
MAX_LATEST_LIMIT = 50


def _require_int(field: str, value) -> int:
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be an integer")
    return value


def validate_history_filter(history_filter: HistoryFilter) -> HistoryFilter:
    page = _require_int("page", history_filter.page)
    if page < 0:
        raise ValidationError("page", "Page must not be negative")

    page_size = _require_int("pageSize", history_filter.page_size)
    if not MIN_PAGE_SIZE <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(
            "pageSize", f"Page size must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}"
        )

    if history_filter.days_window is not None:
        days = _require_int("daysWindow", history_filter.days_window)
        if days <= 0:
            raise ValidationError("daysWindow", "Days window must be a positive number")

    return history_filter


def validate_start_interval(interval_minutes) -> int:
    interval = _require_int("intervalMinutes", interval_minutes)
    if interval < MIN_INTERVAL_MINUTES:
        raise ValidationError("intervalMinutes", "Interval must be at least 1 minute")
    return interval


def validate_start_time(start_from_time: Optional[str]) -> Optional[str]:
    """Return the start time, or None for an empty value; reject anything not HH:MM."""
    if start_from_time is None:
        return None
    if not isinstance(start_from_time, str):
        raise ValidationError("startFromTime", "Start time must be in HH:MM format")
    text = start_from_time.strip()
    if not text:
        return None
    if not START_TIME_RE.match(text):
        raise ValidationError("startFromTime", "Start time must be in HH:MM format")
    return text


def validate_scheduler_config(config: SchedulerConfig) -> SchedulerConfig:
    """
    Check a configuration payload and return a normalised copy.

    Raises:
        ValidationError: naming the first offending field
    """
    if not isinstance(config.enabled, bool):
        raise ValidationError("enabled", "Enabled flag must be true or false")

    interval = _require_int("intervalMinutes", config.interval_minutes)
    if interval < MIN_INTERVAL_MINUTES:
        raise ValidationError("intervalMinutes", "Interval must be at least 1 minute")
    if interval > MAX_INTERVAL_MINUTES:
        raise ValidationError(
            "intervalMinutes", "Interval cannot exceed 1440 minutes (24 hours)"
        )

    return SchedulerConfig(
        enabled=config.enabled,
        interval_minutes=interval,
        start_from_time=validate_start_time(config.start_from_time),
    )


def validate_latest_limit(limit) -> int:
    limit = _require_int("limit", limit)
    if not 1 <= limit <= MAX_LATEST_LIMIT:
        raise ValidationError("limit", f"Limit must be between 1 and {MAX_LATEST_LIMIT}")
    return limit
