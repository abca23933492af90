"""
Paginated full-table loader.

Reads a whole table through fixed-size range reads, strictly in order:

    [0, 1000) -> [1000, 2000) -> ... until a page comes back short or empty

Page k+1 is never requested before page k has returned, so the accumulated
row order is reproducible for a static table.  Any page that still fails after
its bounded retry fails the whole load; callers never see a partial table.

A threading.Event acts as the cancellation token.  It is checked before every
page and interrupts the backoff wait between retries.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Sequence

from engine.report import LoadReport
from engine.source import LoadCancelled, Row, SourceError, TabularSource
from utils.config import LoaderConfig
from utils.http import RetryStrategy

logger = logging.getLogger(__name__)


class PaginatedLoader:
    """Load every row of one table from a TabularSource."""

    def __init__(
        self,
        source: TabularSource,
        table: str,
        columns: str | Sequence[str] = "*",
        order: str | None = None,
        config: LoaderConfig | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.source = source
        self.table = table
        self.columns = columns
        self.order = order
        self.config = config or LoaderConfig()
        self.cancel_event = cancel_event or threading.Event()
        self._retry = RetryStrategy(
            max_retries=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
        )

    def cancel(self) -> None:
        self.cancel_event.set()

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise LoadCancelled(f"load of {self.table} cancelled")

    def _fetch_page(self, offset: int, report: LoadReport) -> list[Row]:
        page_size = self.config.page_size
        for attempt in range(self._retry.max_retries + 1):
            self._check_cancelled()
            try:
                return self.source.read_range(
                    self.table, self.columns, offset, page_size,
                    timeout=self.config.page_timeout, order=self.order,
                )
            except SourceError as exc:
                if attempt >= self._retry.max_retries:
                    raise
                delay = self._retry.delay_for(attempt)
                report.add_retry(str(exc))
                logger.warning(
                    "page_retry table=%s offset=%d attempt=%d delay=%.2fs error=%s",
                    self.table, offset, attempt + 1, delay, exc,
                )
                if self.cancel_event.wait(delay):
                    raise LoadCancelled(f"load of {self.table} cancelled") from exc
        raise AssertionError("unreachable")

    def load(self, report: LoadReport | None = None) -> list[Row]:
        """Fetch every page and return the concatenated rows.

        Raises:
            SourceError: A page failed after its retries
            LoadCancelled: The cancellation token was set
        """
        if report is None:
            report = LoadReport(dataset=self.table)
        report.table = self.table
        report.status = "started"
        page_size = self.config.page_size
        rows: list[Row] = []
        offset = 0
        t0 = time.monotonic()
        try:
            while True:
                page = self._fetch_page(offset, report)
                rows.extend(page)
                report.add_page(len(page))
                logger.debug(
                    "page table=%s offset=%d rows=%d", self.table, offset, len(page)
                )
                if len(page) < page_size:
                    break
                offset += page_size
        except LoadCancelled:
            report.status = "cancelled"
            raise
        except SourceError as exc:
            report.status = "failed"
            report.errors.append(str(exc))
            logger.error("load_failed table=%s offset=%d error=%s",
                         self.table, offset, exc)
            raise
        finally:
            report.elapsed_seconds = time.monotonic() - t0

        report.status = "completed"
        logger.info("loaded table=%s %s", self.table, report.console_summary())
        return rows
