"""
Pydantic response models for the dashboard API.

Optional fields default to None so a dashboard that is still loading (or has
failed) can be described with the same models as a ready one.  Amounts are in
whole dollars; the ``*_compact`` fields carry the abbreviated display form.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ── Dataset listing ───────────────────────────────────────────────────────────

class DatasetOut(BaseModel):
    """A dataset the API can load, with its current load status."""
    name: str = Field(..., description="Dataset key used in URLs", examples=["capital"])
    title: str = Field(..., description="Display title", examples=["Capital Appropriations"])
    table: str = Field(..., description="Backing table name", examples=["budget_2027_capital_aprops"])
    status: str = Field(..., description="loading | ready | failed", examples=["ready"])
    error: str | None = Field(None, description="Failure reason when status is failed")


# ── Rollup ────────────────────────────────────────────────────────────────────

class GroupRowOut(BaseModel):
    """One rollup row (agency or fund group)."""
    name: str = Field(..., description="Group key; blank source values appear as 'Unknown'", examples=["Department of Transportation"])
    count: int = Field(..., ge=0, description="Number of line items in the group", examples=[312])
    total_amount: float = Field(..., description="Sum of the group's amounts in dollars", examples=[4200000000.0])
    total_compact: str = Field(..., description="Abbreviated total", examples=["$4.2B"])
    pct_of_total: float = Field(..., description="Share of the grand total, percent", examples=[12.5])


class LoadReportOut(BaseModel):
    """Accounting for the most recent full-table load."""
    dataset: str
    table: str = ""
    status: str = Field(..., description="not_started | started | completed | failed | cancelled")
    elapsed_seconds: float = 0.0
    pages_fetched: int = 0
    rows_loaded: int = 0
    retries: int = 0
    errors: list[str] = Field(default_factory=list)


class DashboardSummaryOut(BaseModel):
    """Response body for GET /api/v1/dashboards/{dataset}."""
    dataset: str = Field(..., examples=["capital"])
    title: str = Field(..., examples=["Capital Appropriations"])
    status: str = Field(..., description="loading | ready | failed", examples=["ready"])
    error: str | None = Field(None, description="Failure reason when status is failed")
    grand_total: float = Field(0.0, description="Sum of all group totals in dollars")
    grand_total_compact: str = Field("$0", description="Abbreviated grand total", examples=["$33.6B"])
    total_items: int = Field(0, description="Sum of all group counts")
    groups: list[GroupRowOut] = Field(default_factory=list, description="Rollup rows, largest total first")
    load: LoadReportOut | None = Field(None, description="Load accounting")


# ── Drill-down and chat context ───────────────────────────────────────────────

class DrillDownOut(BaseModel):
    """Response body for GET /api/v1/dashboards/{dataset}/groups/{group}/items."""
    dataset: str
    group: str
    status: str = Field(..., description="Dashboard load status; items are empty until ready")
    count: int = Field(..., ge=0, description="Number of items returned")
    items: list[dict[str, Any]] = Field(..., description="Detail rows, largest primary amount first")


class ChatContextOut(BaseModel):
    """Response body for GET /api/v1/dashboards/{dataset}/groups/{group}/context."""
    dataset: str
    group: str
    top: int = Field(..., description="Maximum number of items listed")
    context: str = Field(..., description="Newline-joined text used to seed a chat prompt")


# ── Error model ───────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error category", examples=["Not found"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[404])
