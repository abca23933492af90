"""
Dataset definitions for the three fiscal dashboards.

Each dashboard runs the same engine; only the table, the group key, the amount
and the detail row shape differ.  A DatasetSpec bundles those together with
the wording the chat-context builder uses.

  capital        Capital appropriations, grouped by agency
  discretionary  Discretionary grants, grouped by agency
  revenue        Revenue receipts, grouped by fund group (amounts in millions)
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Callable

from engine.aggregation import AmountFn, KeyFn, Row, field_key, group_key
from utils.formatting import format_compact
from utils.patterns import FISCAL_YEAR_COLUMN
from utils.strings import is_blank, parse_amount, strip_brackets


@dataclass(frozen=True)
class DatasetSpec:
    """Everything the engine needs to know about one backing table."""

    name: str
    title: str
    table: str
    key_fn: KeyFn
    amount_fn: AmountFn
    detail_fn: Callable[[Row], Any]
    primary_amount: str
    group_label: str
    total_label: str
    item_bullet: Callable[[Any], str]
    item_context: Callable[[Any], list[str]]
    columns: str | tuple[str, ...] = "*"
    order: str | None = None


def detail_to_dict(item: Any) -> dict[str, Any]:
    """Plain-dict form of a detail row (API responses, JSON export)."""
    return asdict(item)


# ── Capital appropriations ────────────────────────────────────────────────────

CAPITAL_RECOMMENDED = "Appropriations Recommended 2026-27"
CAPITAL_REAPPROPRIATION = "Reappropriations Recommended 2026-27"


@dataclass(frozen=True)
class CapitalItem:
    agency_name: str
    description: str | None
    program_name: str | None
    reference_number: str | None
    financing_source: str | None
    recommended: float
    reappropriation: float

    @property
    def label(self) -> str:
        return self.description or self.program_name or "N/A"


def _capital_amount(row: Row) -> float:
    return parse_amount(row.get(CAPITAL_RECOMMENDED))


def _capital_item(row: Row) -> CapitalItem:
    return CapitalItem(
        agency_name=group_key(row.get("Agency Name")),
        description=row.get("Description"),
        program_name=row.get("Program Name"),
        reference_number=row.get("Reference Number"),
        financing_source=row.get("Financing Source"),
        recommended=parse_amount(row.get(CAPITAL_RECOMMENDED)),
        reappropriation=parse_amount(row.get(CAPITAL_REAPPROPRIATION)),
    )


def _capital_context(item: CapitalItem) -> list[str]:
    return [
        f"Capital Item: {item.label}",
        f"Agency: {item.agency_name}",
        f"Financing: {item.financing_source}" if item.financing_source else "",
        f"Recommended: {format_compact(item.recommended)}",
        f"Reappropriation: {format_compact(item.reappropriation)}"
        if item.reappropriation > 0 else "",
    ]


CAPITAL = DatasetSpec(
    name="capital",
    title="Capital Appropriations",
    table="budget_2027_capital_aprops",
    key_fn=field_key("Agency Name"),
    amount_fn=_capital_amount,
    detail_fn=_capital_item,
    primary_amount="recommended",
    group_label="Agency",
    total_label="Total Recommended",
    item_bullet=lambda i: f"{i.label}: {format_compact(i.recommended)}",
    item_context=_capital_context,
)


# ── Discretionary grants ──────────────────────────────────────────────────────

DISCRETIONARY_COLUMNS = (
    "id", "year", "agency_name", "Grant Amount", "Grantee",
    "Description of Grant", "Approval Date", "Sponsor",
)


@dataclass(frozen=True)
class GrantItem:
    id: int | None
    grantee: str
    agency_name: str | None
    sponsor: str | None
    grant_amount: float
    grant_amount_raw: str | None
    year: int | None
    approval_date: str | None
    description: str | None


def _grant_amount(row: Row) -> float:
    return parse_amount(row.get("Grant Amount"))


def _grant_item(row: Row) -> GrantItem:
    return GrantItem(
        id=row.get("id"),
        grantee=strip_brackets(row.get("Grantee")),
        agency_name=row.get("agency_name"),
        sponsor=row.get("Sponsor"),
        grant_amount=parse_amount(row.get("Grant Amount")),
        grant_amount_raw=row.get("Grant Amount"),
        year=row.get("year"),
        approval_date=row.get("Approval Date"),
        description=row.get("Description of Grant"),
    )


def _grant_context(item: GrantItem) -> list[str]:
    return [
        f"Grant: {item.grantee}",
        f"Agency: {item.agency_name}" if item.agency_name else "",
        f"Sponsor: {item.sponsor}" if item.sponsor else "",
        f"Amount: {format_compact(item.grant_amount)}",
        f"Year: {item.year}" if item.year else "",
        f"Approval Date: {item.approval_date}" if item.approval_date else "",
        f"Description: {item.description}" if item.description else "",
    ]


DISCRETIONARY = DatasetSpec(
    name="discretionary",
    title="Discretionary Grants",
    table="Discretionary",
    key_fn=field_key("agency_name"),
    amount_fn=_grant_amount,
    detail_fn=_grant_item,
    primary_amount="grant_amount",
    group_label="Agency",
    total_label="Total Grants",
    item_bullet=lambda i: f"{i.grantee}: {format_compact(i.grant_amount)}",
    item_context=_grant_context,
    columns=DISCRETIONARY_COLUMNS,
    order="id",
)


# ── Revenue receipts ──────────────────────────────────────────────────────────

# Revenue cells are stored in millions of dollars
REVENUE_SCALE = 1_000_000


def fiscal_year_columns(row: Row) -> list[str]:
    """Fiscal-year column names present in *row*, oldest first.

    Columns are discovered from the row ("1991-92" ... "2022-23" today) so a
    newly published year is picked up without a code change.  The names sort
    chronologically as plain strings.
    """
    return sorted(k for k in row if FISCAL_YEAR_COLUMN.match(k))


@dataclass(frozen=True)
class RevenueItem:
    id: int | None
    detail_receipt: str
    fp_category: str | None
    fund_group: str | None
    latest_amount: float
    latest_year: str


def latest_fiscal_year(row: Row) -> tuple[float, str]:
    """Return (amount in dollars, fiscal year) for the newest non-blank year.

    Rows with no reported year give ``(0.0, "")``.
    """
    for year in reversed(fiscal_year_columns(row)):
        val = row.get(year)
        if not is_blank(val):
            return parse_amount(val, scale=REVENUE_SCALE), year
    return 0.0, ""


def _revenue_amount(row: Row) -> float:
    return latest_fiscal_year(row)[0]


def _revenue_item(row: Row) -> RevenueItem:
    amount, year = latest_fiscal_year(row)
    receipt = row.get("Detail_Receipt")
    return RevenueItem(
        id=row.get("id"),
        detail_receipt=receipt if not is_blank(receipt) else "Unknown",
        fp_category=row.get("FP_Category"),
        fund_group=row.get("Fund_Group"),
        latest_amount=amount,
        latest_year=year,
    )


def _revenue_context(item: RevenueItem) -> list[str]:
    return [
        f"Revenue Source: {item.detail_receipt}",
        f"Category: {item.fp_category}" if item.fp_category else "",
        f"Fund Group: {item.fund_group}" if item.fund_group else "",
        f"Latest Amount: {format_compact(item.latest_amount)} (FY {item.latest_year})",
    ]


REVENUE = DatasetSpec(
    name="revenue",
    title="Revenue",
    table="Revenue",
    key_fn=field_key("Fund_Group"),
    amount_fn=_revenue_amount,
    detail_fn=_revenue_item,
    primary_amount="latest_amount",
    group_label="Fund Group",
    total_label="Total Revenue",
    item_bullet=lambda i: (
        f"{i.detail_receipt}: {format_compact(i.latest_amount)} (FY {i.latest_year})"
    ),
    item_context=_revenue_context,
    order="id",
)


DATASETS: dict[str, DatasetSpec] = {
    spec.name: spec for spec in (CAPITAL, DISCRETIONARY, REVENUE)
}


def get_dataset(name: str) -> DatasetSpec:
    """Look up a dataset by name.

    Raises:
        KeyError: If *name* is not a known dataset
    """
    try:
        return DATASETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown dataset {name!r}; expected one of {sorted(DATASETS)}"
        ) from None
