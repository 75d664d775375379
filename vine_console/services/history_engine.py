"""Paginated, filterable reads of past job executions"""

from typing import Optional
import logging

from vine_console.core.exceptions import RemoteError, StaleResponseDiscarded
from vine_console.core.scheduler_client import SchedulerAPIClient
from vine_console.core.validation import validate_history_filter, validate_latest_limit
from vine_console.models.scheduler import HistoryFilter, HistoryPage

logger = logging.getLogger(__name__)


class HistoryQueryEngine:
    """Fetches history pages and keeps the one matching the selected filter"""

    def __init__(self, client: SchedulerAPIClient):
        self.client = client
        self.selected: Optional[HistoryFilter] = None
        self.page: Optional[HistoryPage] = None
        self.error: Optional[RemoteError] = None
        self._issued = 0
        self._in_flight = 0

    @property
    def fetching(self) -> bool:
        return self._in_flight > 0

    async def query(self, history_filter: HistoryFilter) -> HistoryPage:
        """
        Fetch one page of history for the given filter.

        The filter becomes the selected one. The result is stored only if no
        newer query was issued while this one was outstanding; the caller
        always gets its own page back.

        Raises:
            ValidationError: filter out of bounds (nothing is sent)
            RemoteError: the service call failed
        """
        validate_history_filter(history_filter)

        self._issued += 1
        seq = self._issued
        self.selected = history_filter
        self._in_flight += 1
        try:
            page = await self.client.get_history(history_filter)
        except RemoteError as e:
            if self._is_current(seq, history_filter):
                logger.warning(f"Job history query failed: {e.message}")
                self.error = e
            raise
        finally:
            self._in_flight -= 1

        try:
            self._apply(seq, history_filter, page)
        except StaleResponseDiscarded as e:
            logger.debug(str(e))
        return page

    async def latest(self, limit: int = 10) -> HistoryPage:
        """Most recent executions, independent of the selected filter"""
        limit = validate_latest_limit(limit)
        return await self.client.get_latest(limit)

    def _is_current(self, seq: int, history_filter: HistoryFilter) -> bool:
        return seq == self._issued and history_filter == self.selected

    def _apply(self, seq: int, history_filter: HistoryFilter, page: HistoryPage) -> None:
        if not self._is_current(seq, history_filter):
            raise StaleResponseDiscarded("history", seq, self._issued)
        self.page = page
        self.error = None
