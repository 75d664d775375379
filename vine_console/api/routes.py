"""FastAPI route definitions for the scheduler console"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel
import logging

from vine_console.core import formatting
from vine_console.core.exceptions import ValidationError
from vine_console.models.scheduler import UNSET, HistoryPage, SchedulerConfig
from vine_console.services.controller import ConsoleView, SchedulerController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class SchedulerConfigBody(BaseModel):
    """Request body for PUT /api/scheduler/config"""
    enabled: bool = False
    intervalMinutes: int
    startFromTime: Optional[str] = None


def get_controller(request: Request) -> SchedulerController:
    return request.app.state.controller


def _validation_failed(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"field": e.field, "message": e.message})


def _page_json(page: Optional[HistoryPage]) -> Optional[dict]:
    if page is None:
        return None
    data = page.model_dump(mode="json", by_alias=True)
    for row, execution in zip(data["items"], page.items):
        row["duration"] = formatting.format_duration(execution.start_time, execution.end_time)
        row["severity"] = formatting.status_severity(execution.status).value
    return data


def _view_json(view: ConsoleView) -> dict:
    status = view.status.model_dump(mode="json", by_alias=True) if view.status else None
    return {
        "state": view.state.value,
        "status": status,
        "summary": {
            "schedule": view.schedule_summary,
            "lastRun": view.last_run,
            "nextRun": view.next_run,
            "lastRunSeverity": view.last_run_severity.value,
        },
        "history": _page_json(view.history),
        "filter": {
            "page": view.history_filter.page,
            "pageSize": view.history_filter.page_size,
            "daysWindow": view.history_filter.days_window,
        },
        "loading": {
            "status": view.status_fetching,
            "history": view.history_fetching,
            "commands": sorted(view.pending_commands),
        },
        "errors": {
            "status": view.status_error,
            "history": view.history_error,
            "command": view.command_error,
        },
    }


def _command_response(request: Request, result) -> dict:
    controller = get_controller(request)
    if result is None:
        raise HTTPException(status_code=502, detail=controller.view().command_error)
    return _view_json(controller.view())


# ============ Status ============

@router.get("/scheduler")
async def scheduler_view(request: Request):
    """Current status, history page and flags"""
    return _view_json(get_controller(request).view())


@router.post("/scheduler/start")
async def start_scheduler(request: Request, interval_minutes: Optional[int] = Query(default=None)):
    try:
        result = await get_controller(request).start_scheduler(interval_minutes)
    except ValidationError as e:
        raise _validation_failed(e)
    return _command_response(request, result)


@router.post("/scheduler/stop")
async def stop_scheduler(request: Request):
    result = await get_controller(request).stop_scheduler()
    return _command_response(request, result)


@router.put("/scheduler/config")
async def update_scheduler_config(request: Request, body: SchedulerConfigBody):
    config = SchedulerConfig(
        enabled=body.enabled,
        interval_minutes=body.intervalMinutes,
        start_from_time=body.startFromTime,
    )
    try:
        result = await get_controller(request).update_config(config)
    except ValidationError as e:
        raise _validation_failed(e)
    return _command_response(request, result)


@router.post("/scheduler/run-now")
async def run_now(request: Request):
    result = await get_controller(request).run_now()
    return _command_response(request, result)


# ============ History ============

@router.get("/scheduler/history")
async def job_history(
    request: Request,
    page: Optional[int] = None,
    size: Optional[int] = None,
    days: Optional[int] = None,
    all_days: bool = False,
):
    """Change the history selection; omitted parameters keep their current value"""
    controller = get_controller(request)
    try:
        page_data = await controller.change_filter(
            page=UNSET if page is None else page,
            page_size=UNSET if size is None else size,
            days_window=None if all_days else (UNSET if days is None else days),
        )
    except ValidationError as e:
        raise _validation_failed(e)

    if page_data is None:
        # the kept page belongs to the previous filter
        detail = controller.view().history_error or "Failed to load job history"
        raise HTTPException(status_code=502, detail=detail)
    return _page_json(page_data)


@router.get("/scheduler/history/latest")
async def latest_executions(request: Request, limit: int = 10):
    try:
        page = await get_controller(request).latest_executions(limit)
    except ValidationError as e:
        raise _validation_failed(e)
    if page is None:
        raise HTTPException(status_code=502, detail="Failed to load latest executions")
    return _page_json(page)


# ============ Notifications ============

@router.get("/notifications")
async def notifications(request: Request, limit: int = 10):
    return [
        {
            "level": n.level,
            "message": n.message,
            "createdAt": n.created_at.isoformat(),
        }
        for n in get_controller(request).notifications.recent(limit)
    ]
