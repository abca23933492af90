"""
Dashboard engine: one loaded dataset with its rollup table and drill-downs.

An engine instance is created when a dashboard opens and discarded when it
closes.  Its lifecycle:

    LOADING --(every page read)--> READY
    LOADING --(any page fails / cancelled)--> FAILED(reason)

The row set, the aggregation index and the drill-down cache are published
together under the lock once the load succeeds, so readers either see the
complete table or nothing.  Until then aggregates() is empty and drill_down()
returns [].

Usage::

    engine = DashboardEngine(CAPITAL, PostgrestSource(cfg)).start()
    engine.wait()
    for group in engine.aggregates():
        print(group.name, format_compact(group.total_amount))
    items = engine.drill_down("Department of Transportation")
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any

from engine.aggregation import AggregationIndex, GroupAggregate, build_index
from engine.context import DEFAULT_TOP_N, build_group_context, build_item_context
from engine.datasets import DatasetSpec
from engine.drilldown import DrillDownCache
from engine.loader import PaginatedLoader
from engine.report import LoadReport
from engine.source import LoadCancelled, LoadError, TabularSource
from utils.config import LoaderConfig

logger = logging.getLogger(__name__)


class LoadStatus(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    status: LoadStatus
    error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is LoadStatus.READY

    @property
    def is_failed(self) -> bool:
        return self.status is LoadStatus.FAILED


_LOADING = LoadState(LoadStatus.LOADING)


class DashboardEngine:
    """Paginated loader + aggregation index + drill-down cache for one dataset."""

    def __init__(self, dataset: DatasetSpec, source: TabularSource,
                 loader_config: LoaderConfig | None = None) -> None:
        self.dataset = dataset
        self.source = source
        self._cancel = threading.Event()
        self._loader = PaginatedLoader(
            source,
            dataset.table,
            columns=dataset.columns,
            order=dataset.order,
            config=loader_config,
            cancel_event=self._cancel,
        )
        self.report = LoadReport(dataset=dataset.name)

        self._lock = threading.Lock()
        self._state: LoadState = _LOADING
        self._rows: list[dict[str, Any]] | None = None
        self._index: AggregationIndex | None = None
        self._drill: DrillDownCache | None = None
        self._started = False
        self._closed = False
        self._done = threading.Event()
        self._thread: threading.Thread | None = None

    # ── lifecycle ─────────────────────────────────────────────────────────

    def load(self) -> LoadState:
        """Run the full load on the calling thread and return the final state.

        An engine loads once; calling load() again waits for the first load
        and returns its outcome.
        """
        with self._lock:
            started, self._started = self._started, True
        if started:
            self._done.wait()
            return self.status()

        try:
            rows = self._loader.load(self.report)
            index = build_index(rows, self.dataset.key_fn, self.dataset.amount_fn)
        except LoadCancelled:
            self._settle(LoadState(LoadStatus.FAILED, "cancelled"))
        except LoadError as exc:
            self._settle(LoadState(LoadStatus.FAILED, str(exc)))
        except Exception as exc:
            logger.exception("load_crashed dataset=%s", self.dataset.name)
            self.report.status = "failed"
            self._settle(LoadState(LoadStatus.FAILED, f"{type(exc).__name__}: {exc}"))
        else:
            drill = DrillDownCache(index.rows_by_key, self.dataset.detail_fn,
                                   self.dataset.primary_amount)
            with self._lock:
                if not self._closed:
                    self._rows, self._index, self._drill = rows, index, drill
                    self._state = LoadState(LoadStatus.READY)
            logger.info("aggregated dataset=%s groups=%d rows=%d",
                        self.dataset.name, len(index.groups), len(rows))
        finally:
            self._done.set()
        return self.status()

    def _settle(self, state: LoadState) -> None:
        with self._lock:
            if not self._closed:
                self._state = state

    def start(self) -> "DashboardEngine":
        """Run load() on a daemon thread and return immediately."""
        self._thread = threading.Thread(
            target=self.load, name=f"load-{self.dataset.name}", daemon=True
        )
        self._thread.start()
        return self

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the load settles; False if *timeout* elapsed first."""
        return self._done.wait(timeout)

    def cancel(self) -> None:
        """Ask the loader to stop at the next page boundary."""
        self._cancel.set()

    def close(self) -> None:
        """Cancel any running load and drop the row set and drill cache."""
        self._cancel.set()
        with self._lock:
            self._closed = True
            self._rows = self._index = self._drill = None
            self._state = LoadState(LoadStatus.FAILED, "closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ── query surface ─────────────────────────────────────────────────────

    def status(self) -> LoadState:
        with self._lock:
            return self._state

    def _current_index(self) -> AggregationIndex | None:
        with self._lock:
            return self._index

    def aggregates(self) -> list[GroupAggregate]:
        """Rollup rows sorted by total, largest first; empty until READY."""
        index = self._current_index()
        return list(index.groups) if index else []

    def grand_total(self) -> float:
        index = self._current_index()
        return index.grand_total if index else 0.0

    def total_item_count(self) -> int:
        index = self._current_index()
        return index.total_count if index else 0

    def row_count(self) -> int:
        with self._lock:
            return len(self._rows) if self._rows is not None else 0

    def group(self, name: str) -> GroupAggregate | None:
        index = self._current_index()
        return index.get(name) if index else None

    def share_of_total(self, name: str) -> float:
        index = self._current_index()
        return index.share_of_total(name) if index else 0.0

    def drill_down(self, group_key: str) -> list:
        """Detail rows for *group_key*, largest primary amount first.

        Returns [] before the load is READY and for unknown keys.  Never raises.
        """
        with self._lock:
            drill = self._drill
        if drill is None:
            return []
        return drill.get(group_key)

    def build_chat_context(self, target: GroupAggregate | str | Any,
                           top_n: int = DEFAULT_TOP_N) -> str:
        """Chat-prompt text for a rollup row (or its name) or a detail row.

        Raises:
            ValueError: If *target* names a group that is not in the table
        """
        if isinstance(target, str):
            group = self.group(target)
            if group is None:
                raise ValueError(f"No group named {target!r} in {self.dataset.name}")
            target = group
        if isinstance(target, GroupAggregate):
            return build_group_context(target, self.drill_down(target.name),
                                       self.dataset, top_n)
        return build_item_context(target, self.dataset)
