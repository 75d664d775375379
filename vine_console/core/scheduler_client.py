"""HTTP client for the VINE scheduler endpoints"""

import httpx
from typing import Optional
import logging

from pydantic import ValidationError as PayloadError

from vine_console.core.exceptions import RemoteError
from vine_console.models.scheduler import (
    HistoryFilter,
    HistoryPage,
    SchedulerConfig,
    SchedulerStatus,
)

logger = logging.getLogger(__name__)


class SchedulerAPIClient:
    """Client for the scheduler controller of the VINE backend"""

    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/" + api_prefix.strip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_status(self) -> SchedulerStatus:
        data = await self._request("GET", "/scheduler/status")
        return self._parse(SchedulerStatus, data, "scheduler status")

    async def start(self, interval_minutes: int) -> SchedulerStatus:
        data = await self._request(
            "POST", "/scheduler/start", params={"intervalMinutes": interval_minutes}
        )
        return self._parse(SchedulerStatus, data, "scheduler status")

    async def stop(self) -> SchedulerStatus:
        data = await self._request("POST", "/scheduler/stop")
        return self._parse(SchedulerStatus, data, "scheduler status")

    async def update_config(self, config: SchedulerConfig) -> SchedulerStatus:
        data = await self._request("PUT", "/scheduler/config", json=config.to_payload())
        return self._parse(SchedulerStatus, data, "scheduler status")

    async def run_now(self) -> str:
        """Trigger one execution outside the schedule. Returns the service's acknowledgement."""
        response = await self._send("POST", "/scheduler/run-now")
        return response.text

    async def get_history(self, history_filter: HistoryFilter) -> HistoryPage:
        data = await self._request("GET", "/scheduler/history", params=history_filter.to_params())
        return self._parse(HistoryPage, self._with_page_defaults(data, history_filter), "job history")

    async def get_latest(self, limit: int) -> HistoryPage:
        data = await self._request("GET", "/scheduler/history/latest", params={"limit": limit})
        defaults = HistoryFilter(page=0, page_size=limit)
        return self._parse(HistoryPage, self._with_page_defaults(data, defaults), "latest executions")

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        response = await self._send(method, path, **kwargs)
        try:
            return response.json()
        except ValueError:
            raise RemoteError(
                f"Scheduler service returned a non-JSON response for {path}",
                status_code=response.status_code,
            )

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("SchedulerAPIClient is not open")
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise RemoteError(f"Failed to reach scheduler service: {e}")

        if response.is_error:
            message = self._error_message(response)
            logger.debug(f"{method} {path} failed with {response.status_code}: {message}")
            raise RemoteError(message, status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the service's own explanation over the bare status line"""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "error", "detail"):
                if body.get(key):
                    return str(body[key])
        text = response.text.strip()
        if text:
            return text
        return f"Scheduler service returned HTTP {response.status_code}"

    @staticmethod
    def _with_page_defaults(data, history_filter: HistoryFilter):
        # Older backends echo neither page nor size
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data.setdefault("page", history_filter.page)
        if not any(key in data for key in ("pageSize", "size", "page_size")):
            data["pageSize"] = history_filter.page_size
        return data

    @staticmethod
    def _parse(model, data, what: str):
        try:
            return model.model_validate(data)
        except PayloadError as e:
            raise RemoteError(f"Malformed {what} from scheduler service: {e.error_count()} invalid field(s)")
