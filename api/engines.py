"""
Dashboard engine registry for the API.

Holds at most one DashboardEngine per dataset.  The first request for a
dataset creates its engine and starts the load on a background thread; later
requests reuse it until the TTL expires (APP_ENGINE_TTL, 15 minutes by
default), at which point the next request starts a fresh load.  A failed
engine keeps reporting its failure until it is reloaded or expires.

Evicted engines are closed: their load is cancelled at the next page boundary
and their row set released.

Routes get the registry through the get_registry() dependency, which reads it
from ``app.state`` so tests can install their own.
"""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Request

from engine.dashboard import DashboardEngine
from engine.datasets import DATASETS, DatasetSpec, get_dataset
from engine.source import TabularSource
from utils.cache import TTLCache
from utils.config import LoaderConfig

logger = logging.getLogger(__name__)


def _close_engine(name: str, engine: DashboardEngine) -> None:
    logger.info("engine_released dataset=%s", name)
    engine.close()


class EngineRegistry:
    """Per-dataset engine cache with background loading."""

    def __init__(
        self,
        source: TabularSource,
        loader_config: LoaderConfig | None = None,
        ttl_seconds: float = 900.0,
        datasets: Iterable[DatasetSpec] | None = None,
        autostart: bool = True,
    ) -> None:
        self.source = source
        self.loader_config = loader_config
        self.autostart = autostart
        self._datasets = (
            {d.name: d for d in datasets} if datasets is not None else dict(DATASETS)
        )
        self._engines = TTLCache(
            maxsize=max(len(self._datasets), 1),
            ttl_seconds=ttl_seconds,
            on_evict=_close_engine,
        )

    @property
    def datasets(self) -> dict[str, DatasetSpec]:
        return dict(self._datasets)

    def _dataset(self, name: str) -> DatasetSpec:
        if name not in self._datasets:
            # Raises KeyError with the list of valid names
            get_dataset(name)
            raise KeyError(f"Dataset {name!r} is not served by this registry")
        return self._datasets[name]

    def _create(self, dataset: DatasetSpec) -> DashboardEngine:
        engine = DashboardEngine(dataset, self.source, self.loader_config)
        logger.info("engine_created dataset=%s table=%s", dataset.name, dataset.table)
        if self.autostart:
            engine.start()
        return engine

    def get(self, name: str) -> DashboardEngine:
        """Return the live engine for *name*, creating and starting it if needed.

        Raises:
            KeyError: If *name* is not a served dataset
        """
        dataset = self._dataset(name)
        return self._engines.get_or_create(name, lambda: self._create(dataset))

    def reload(self, name: str) -> DashboardEngine:
        """Discard the current engine for *name* and start a new load."""
        self._dataset(name)
        self._engines.delete(name)
        return self.get(name)

    def stats(self) -> dict[str, int]:
        """Engine cache counters: ``hits``, ``misses`` and live ``size``."""
        return self._engines.stats()

    def close(self) -> None:
        """Close every cached engine."""
        self._engines.clear()


def get_registry(request: Request) -> EngineRegistry:
    """FastAPI dependency: the registry installed on the application."""
    return request.app.state.registry
