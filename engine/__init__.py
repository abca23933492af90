"""Dataset engine for the fiscal dashboards.

Loads a whole backing table page by page, rolls it up by group key, and
serves cached drill-downs and chat-context text for each group.
"""

from engine.aggregation import (
    AggregationIndex,
    GroupAggregate,
    UNKNOWN_GROUP,
    aggregate,
    build_index,
    field_key,
    group_key,
)
from engine.context import build_group_context, build_item_context
from engine.dashboard import DashboardEngine, LoadState, LoadStatus
from engine.datasets import (
    CAPITAL,
    DATASETS,
    DISCRETIONARY,
    REVENUE,
    CapitalItem,
    DatasetSpec,
    GrantItem,
    RevenueItem,
    get_dataset,
)
from engine.drilldown import DrillDownCache
from engine.loader import PaginatedLoader
from engine.report import LoadReport
from engine.source import (
    LoadCancelled,
    LoadError,
    MemorySource,
    PostgrestSource,
    SourceError,
    TabularSource,
)

__all__ = [
    # Aggregation
    "AggregationIndex",
    "GroupAggregate",
    "UNKNOWN_GROUP",
    "aggregate",
    "build_index",
    "field_key",
    "group_key",
    # Context
    "build_group_context",
    "build_item_context",
    # Engine
    "DashboardEngine",
    "LoadState",
    "LoadStatus",
    # Datasets
    "CAPITAL",
    "DATASETS",
    "DISCRETIONARY",
    "REVENUE",
    "CapitalItem",
    "DatasetSpec",
    "GrantItem",
    "RevenueItem",
    "get_dataset",
    # Loading
    "DrillDownCache",
    "PaginatedLoader",
    "LoadReport",
    "LoadCancelled",
    "LoadError",
    "MemorySource",
    "PostgrestSource",
    "SourceError",
    "TabularSource",
]
