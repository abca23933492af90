"""
/api/v1/dashboards endpoints.

Exposes each dataset engine's query surface: load status, the rollup table
with grand total, per-group drill-downs, and chat-context text.  Engines load
in the background, so a first request usually answers with status "loading"
and an empty table; pass ``wait`` to block for up to that many seconds.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi import Query as FQuery

from api.engines import EngineRegistry, get_registry
from api.models import (
    ChatContextOut,
    DashboardSummaryOut,
    DatasetOut,
    DrillDownOut,
    ErrorResponse,
    GroupRowOut,
    LoadReportOut,
)
from engine.context import DEFAULT_TOP_N
from engine.dashboard import DashboardEngine
from engine.datasets import detail_to_dict
from utils.formatting import format_compact

router = APIRouter(prefix="/dashboards", tags=["dashboards"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Unknown dataset or group"}}


def _engine(registry: EngineRegistry, dataset: str, wait: float = 0.0) -> DashboardEngine:
    try:
        engine = registry.get(dataset)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from None
    if wait > 0:
        engine.wait(wait)
    return engine


@router.get("", response_model=list[DatasetOut], summary="List dashboards")
def list_dashboards(registry: EngineRegistry = Depends(get_registry)) -> list[DatasetOut]:
    """Every served dataset with its current load status.

    Listing starts a load for any dataset that does not have an engine yet.
    """
    out = []
    for name, spec in registry.datasets.items():
        state = registry.get(name).status()
        out.append(DatasetOut(
            name=name, title=spec.title, table=spec.table,
            status=state.status.value, error=state.error,
        ))
    return out


@router.get(
    "/{dataset}",
    response_model=DashboardSummaryOut,
    summary="Rollup table and totals",
    responses=_NOT_FOUND,
)
def dashboard_summary(
    dataset: str,
    limit: int | None = FQuery(None, ge=1, description="Return only the largest N groups"),
    wait: float = FQuery(0.0, ge=0, le=60, description="Seconds to wait for a running load"),
    registry: EngineRegistry = Depends(get_registry),
) -> DashboardSummaryOut:
    """Rollup rows sorted by total (largest first), grand total and item count.

    Groups are empty while the dataset is loading or after a failed load.
    Totals always cover every group, even when ``limit`` trims the list.
    """
    engine = _engine(registry, dataset, wait)
    state = engine.status()
    groups = engine.aggregates()
    grand_total = engine.grand_total()
    if limit is not None:
        groups = groups[:limit]

    rows = [
        GroupRowOut(
            name=g.name,
            count=g.count,
            total_amount=g.total_amount,
            total_compact=format_compact(g.total_amount),
            pct_of_total=round(g.total_amount / grand_total * 100, 1) if grand_total else 0.0,
        )
        for g in groups
    ]
    return DashboardSummaryOut(
        dataset=dataset,
        title=engine.dataset.title,
        status=state.status.value,
        error=state.error,
        grand_total=grand_total,
        grand_total_compact=format_compact(grand_total),
        total_items=engine.total_item_count(),
        groups=rows,
        load=LoadReportOut(**engine.report.to_dict()),
    )


@router.get(
    "/{dataset}/groups/{group:path}/items",
    response_model=DrillDownOut,
    summary="Line items for one group",
    responses=_NOT_FOUND,
)
def group_items(
    dataset: str,
    group: str,
    wait: float = FQuery(0.0, ge=0, le=60, description="Seconds to wait for a running load"),
    registry: EngineRegistry = Depends(get_registry),
) -> DrillDownOut:
    """Detail rows for *group*, largest primary amount first.

    The first request for a group computes and caches its rows; later
    requests are served from the cache.  Unknown groups return no items.
    """
    engine = _engine(registry, dataset, wait)
    items = engine.drill_down(group)
    return DrillDownOut(
        dataset=dataset,
        group=group,
        status=engine.status().status.value,
        count=len(items),
        items=[detail_to_dict(i) for i in items],
    )


@router.get(
    "/{dataset}/groups/{group:path}/context",
    response_model=ChatContextOut,
    summary="Chat-prompt context for one group",
    responses=_NOT_FOUND,
)
def group_context(
    dataset: str,
    group: str,
    top: int = FQuery(DEFAULT_TOP_N, ge=0, le=100, description="Number of top items to list"),
    wait: float = FQuery(0.0, ge=0, le=60, description="Seconds to wait for a running load"),
    registry: EngineRegistry = Depends(get_registry),
) -> ChatContextOut:
    """Text block describing the group and its largest items."""
    engine = _engine(registry, dataset, wait)
    try:
        text = engine.build_chat_context(group, top_n=top)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from None
    return ChatContextOut(dataset=dataset, group=group, top=top, context=text)


@router.post(
    "/{dataset}/reload",
    response_model=DatasetOut,
    summary="Discard the loaded table and load again",
    responses=_NOT_FOUND,
)
def reload_dashboard(
    dataset: str,
    registry: EngineRegistry = Depends(get_registry),
) -> DatasetOut:
    """Close the current engine for *dataset* and start a fresh load."""
    try:
        engine = registry.reload(dataset)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from None
    state = engine.status()
    return DatasetOut(
        name=dataset, title=engine.dataset.title, table=engine.dataset.table,
        status=state.status.value, error=state.error,
    )
