"""
Aggregation index: one rollup record per group key, built in a single pass.

For every row the pass derives the group key and the amount, bumps that
group's count and total, and files a reference to the row under its key.  The
rollup table is then sorted by total, largest first.  Python's sort is stable,
so groups with equal totals keep first-seen order and repeated aggregation of
the same rows is deterministic.

Amounts are accumulated as exact ``Decimal`` values built from each float's
shortest repr, so a group's total does not depend on row order and the grand
total equals a full re-scan exactly.  The grand total and item count are sums
over the rollup table, never a second scan of the rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import Any, Callable, Iterable

from utils.strings import is_blank

Row = dict[str, Any]
KeyFn = Callable[[Row], str]
AmountFn = Callable[[Row], float]

UNKNOWN_GROUP = "Unknown"

# Wide enough that adding 17-digit float reprs never rounds
_SUM_PRECISION = 80


def exact_amount(value: float) -> Decimal:
    """Decimal equal to the shortest repr of *value* (0.1 -> Decimal("0.1"))."""
    return Decimal(repr(float(value)))


def exact_sum(values: Iterable[Decimal]) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _SUM_PRECISION
        return sum(values, Decimal(0))


def group_key(value: Any) -> str:
    """Normalize a raw group field value.

    None, empty and whitespace-only values become ``"Unknown"``; everything
    else is kept verbatim, so "Health" and "HEALTH" are different groups.
    """
    if is_blank(value):
        return UNKNOWN_GROUP
    return value if isinstance(value, str) else str(value)


def field_key(column: str) -> KeyFn:
    """Build a key extractor that groups rows by one column."""
    def key_fn(row: Row) -> str:
        return group_key(row.get(column))
    key_fn.__name__ = f"key_{column}"
    return key_fn


@dataclass(frozen=True)
class GroupAggregate:
    """One rollup row: how many rows share a key and what they add up to."""

    name: str
    count: int
    total_amount: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count,
                "total_amount": self.total_amount}


@dataclass
class AggregationIndex:
    """Rollup table plus a key -> rows index for drill-downs."""

    groups: list[GroupAggregate] = field(default_factory=list)
    rows_by_key: dict[str, list[Row]] = field(default_factory=dict)
    exact_totals: dict[str, Decimal] = field(default_factory=dict)

    @property
    def grand_total(self) -> float:
        return float(exact_sum(self.exact_totals.values()))

    @property
    def total_count(self) -> int:
        return sum(g.count for g in self.groups)

    def get(self, name: str) -> GroupAggregate | None:
        for group in self.groups:
            if group.name == name:
                return group
        return None

    def share_of_total(self, name: str) -> float:
        """Percentage of the grand total held by group *name* (0 if unknown)."""
        grand_total = self.grand_total
        group = self.get(name)
        if group is None or not grand_total:
            return 0.0
        return round(group.total_amount / grand_total * 100, 1)


def build_index(rows: Iterable[Row], key_fn: KeyFn,
                amount_fn: AmountFn) -> AggregationIndex:
    """Aggregate *rows* by ``key_fn`` summing ``amount_fn`` in one pass."""
    counts: dict[str, int] = {}
    totals: dict[str, Decimal] = {}
    rows_by_key: dict[str, list[Row]] = {}
    with localcontext() as ctx:
        ctx.prec = _SUM_PRECISION
        for row in rows:
            key = key_fn(row)
            if key not in counts:
                counts[key] = 0
                totals[key] = Decimal(0)
                rows_by_key[key] = []
            counts[key] += 1
            totals[key] += exact_amount(amount_fn(row))
            rows_by_key[key].append(row)

    order = sorted(totals, key=totals.__getitem__, reverse=True)
    groups = [
        GroupAggregate(name=k, count=counts[k], total_amount=float(totals[k]))
        for k in order
    ]
    return AggregationIndex(groups=groups, rows_by_key=rows_by_key, exact_totals=totals)


def aggregate(rows: Iterable[Row], key_fn: KeyFn,
              amount_fn: AmountFn) -> list[GroupAggregate]:
    """Return the rollup table for *rows*, sorted by total descending."""
    return build_index(rows, key_fn, amount_fn).groups
