"""Scheduler status, job history and command payload types"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, time
from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# Marks a keyword argument that was not passed at all (None is a real value).
UNSET: Any = object()


class RunStatus(str, Enum):
    """Outcome of the most recent scheduled run"""
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    RUNNING = "RUNNING"
    UNKNOWN = "UNKNOWN"


class ExecutionStatus(str, Enum):
    """Status of a single job execution"""
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ERROR = "ERROR"
    RUNNING = "RUNNING"
    UNKNOWN = "UNKNOWN"


# Names the backend writes into its execution history table
_STATUS_ALIASES = {
    "COMPLETED": "SUCCESS",
    "FAILED": "FAILURE",
    "STARTED": "RUNNING",
}


def _coerce_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    name = str(value).strip().upper()
    try:
        return enum_cls(_STATUS_ALIASES.get(name, name))
    except ValueError:
        return enum_cls.UNKNOWN


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SchedulerStatus(_WireModel):
    """Snapshot of the remote scheduler, replaced wholesale on every update"""

    running: bool = False
    enabled: Optional[bool] = None
    interval_minutes: int = Field(
        gt=0,
        validation_alias=AliasChoices("intervalMinutes", "interval_minutes"),
        serialization_alias="intervalMinutes",
    )
    start_from_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("startFromTime", "start_from_time"),
        serialization_alias="startFromTime",
    )
    last_run_time: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("lastRunTime", "last_run_time"),
        serialization_alias="lastRunTime",
    )
    last_run_status: Optional[RunStatus] = Field(
        default=None,
        validation_alias=AliasChoices("lastRunStatus", "lastExecutionStatus", "last_run_status"),
        serialization_alias="lastRunStatus",
    )
    next_run_time: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("nextRunTime", "next_run_time"),
        serialization_alias="nextRunTime",
    )
    total_runs: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("totalRuns", "totalExecutions", "total_runs"),
        serialization_alias="totalRuns",
    )
    successful_runs: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("successfulRuns", "successfulExecutions", "successful_runs"),
        serialization_alias="successfulRuns",
    )
    failed_runs: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("failedRuns", "failedExecutions", "failed_runs"),
        serialization_alias="failedRuns",
    )
    last_error_message: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("lastErrorMessage", "last_error_message"),
        serialization_alias="lastErrorMessage",
    )

    @field_validator("last_run_status", mode="before")
    @classmethod
    def _parse_run_status(cls, value):
        return _coerce_enum(RunStatus, value)

    @field_validator("total_runs", mode="before")
    @classmethod
    def _default_total(cls, value):
        return 0 if value is None else value

    @field_validator("start_from_time", mode="before")
    @classmethod
    def _normalize_start_time(cls, value):
        """Accept "HH:MM", "HH:MM:SS" or a full ISO datetime and keep only "HH:MM"."""
        if value is None or value == "":
            return None
        if isinstance(value, (datetime, time)):
            return value.strftime("%H:%M")
        text = str(value).strip()
        if "T" in text or len(text) > 10:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%H:%M")
        if text.count(":") == 2:
            return time.fromisoformat(text).strftime("%H:%M")
        return text

    @model_validator(mode="after")
    def _drop_next_run_when_stopped(self):
        if not self.running and self.next_run_time is not None:
            # frozen model: bypass __setattr__ during validation
            object.__setattr__(self, "next_run_time", None)
        return self


class JobExecution(_WireModel):
    """One run of the scheduled job as reported by the service"""

    id: Union[int, str]
    start_time: datetime = Field(
        validation_alias=AliasChoices("startTime", "start_time"),
        serialization_alias="startTime",
    )
    end_time: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("endTime", "end_time"),
        serialization_alias="endTime",
    )
    status: ExecutionStatus = ExecutionStatus.UNKNOWN
    records_processed: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("recordsProcessed", "records_processed"),
        serialization_alias="recordsProcessed",
    )
    message: Optional[str] = None
    duration_ms: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("durationMs", "duration_ms"),
        serialization_alias="durationMs",
    )

    @model_validator(mode="before")
    @classmethod
    def _fallback_message(cls, data):
        if isinstance(data, dict) and not data.get("message") and data.get("errorMessage"):
            data = {**data, "message": data["errorMessage"]}
        return data

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return _coerce_enum(ExecutionStatus, value) or ExecutionStatus.UNKNOWN

    @field_validator("records_processed", mode="before")
    @classmethod
    def _default_records(cls, value):
        return 0 if value is None else value


class HistoryPage(_WireModel):
    """A page of job executions, most recent first"""

    items: list[JobExecution] = Field(
        default_factory=list,
        validation_alias=AliasChoices("items", "jobs", "executions"),
    )
    page: int = Field(default=0, ge=0)
    page_size: int = Field(
        ge=1,
        le=100,
        validation_alias=AliasChoices("pageSize", "size", "page_size"),
        serialization_alias="pageSize",
    )
    total_elements: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("totalElements", "totalCount", "total_elements"),
        serialization_alias="totalElements",
    )
    total_pages: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("totalPages", "total_pages"),
        serialization_alias="totalPages",
    )

    @model_validator(mode="after")
    def _compute_total_pages(self):
        if self.total_pages is None:
            object.__setattr__(
                self, "total_pages", math.ceil(self.total_elements / self.page_size)
            )
        return self

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages - 1

    @property
    def has_previous(self) -> bool:
        return self.page > 0


@dataclass(frozen=True)
class HistoryFilter:
    """Selection applied to the job history table"""
    page: int = 0
    page_size: int = 20
    days_window: Optional[int] = None

    def with_changes(self, page=UNSET, page_size=UNSET, days_window=UNSET) -> "HistoryFilter":
        """
        Derive a new filter.

        A new days window or page size starts over at the first page, so rows
        from the previous selection never mix with the new one.
        """
        changes = {}
        if page is not UNSET:
            changes["page"] = page
        if page_size is not UNSET and page_size != self.page_size:
            changes["page_size"] = page_size
            changes.setdefault("page", 0)
        if days_window is not UNSET and days_window != self.days_window:
            changes["days_window"] = days_window
            changes["page"] = 0
        return replace(self, **changes)

    def first_page(self) -> "HistoryFilter":
        return replace(self, page=0)

    def to_params(self) -> dict[str, int]:
        params = {"page": self.page, "size": self.page_size}
        if self.days_window is not None:
            params["days"] = self.days_window
        return params


@dataclass(frozen=True)
class SchedulerConfig:
    """Configuration payload for PUT /scheduler/config"""
    enabled: bool
    interval_minutes: int
    start_from_time: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "enabled": self.enabled,
            "intervalMinutes": self.interval_minutes,
            "startFromTime": self.start_from_time or None,
        }
