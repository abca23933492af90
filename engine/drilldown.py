"""
Compute-once drill-down cache.

The first request for a group key maps that group's rows to detail rows,
sorts them by the primary amount (largest first) and stores the result.
Every later request for the key returns the stored list without touching the
mapper again.  Entries are never evicted; the cache lives exactly as long as
the immutable row set it was built from.

Concurrency: the first caller for a key installs a Future under the lock and
computes outside it.  Callers that arrive while that computation is running
wait on the same Future instead of recomputing.  Different keys never wait on
each other.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Mapping, Sequence

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class DrillDownCache:
    """Lazily computed, cached detail lists keyed by group name."""

    def __init__(
        self,
        rows_by_key: Mapping[str, Sequence[Row]],
        mapper: Callable[[Row], Any],
        primary_amount: str,
    ) -> None:
        self._rows_by_key = rows_by_key
        self._mapper = mapper
        self._primary_amount = primary_amount
        self._entries: dict[str, Future] = {}
        self._lock = threading.Lock()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
        return entry is not None and entry.done()

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for f in self._entries.values() if f.done())

    def _compute(self, key: str) -> list:
        items = [self._mapper(row) for row in self._rows_by_key[key]]
        items.sort(key=lambda item: getattr(item, self._primary_amount), reverse=True)
        return items

    def get(self, key: str) -> list:
        """Return the detail rows for *key* (empty for unknown keys).

        Never raises: a mapper failure is logged, the half-built entry is
        dropped so a later call can try again, and an empty list is returned.
        """
        if key not in self._rows_by_key:
            return []

        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if owner:
                future = self._entries[key] = Future()

        if owner:
            logger.debug("drill_cache_miss key=%s rows=%d",
                         key, len(self._rows_by_key[key]))
            try:
                future.set_result(self._compute(key))
            except Exception as exc:
                logger.exception("drill_down_failed key=%s", key)
                with self._lock:
                    self._entries.pop(key, None)
                future.set_exception(exc)
                return []

        try:
            return list(future.result())
        except Exception:
            # The owning call already logged the failure
            return []
