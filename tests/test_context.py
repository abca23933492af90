"""Tests for engine/context.py — chat-context text."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from engine.aggregation import GroupAggregate
from engine.context import build_group_context, build_item_context
from engine.datasets import CAPITAL, DISCRETIONARY


def _capital_items(capital_rows):
    items = [CAPITAL.detail_fn(r) for r in capital_rows[:3]]
    return sorted(items, key=lambda i: i.recommended, reverse=True)


def test_group_context_layout(capital_rows):
    group = GroupAggregate("Department of Transportation", 2, 3_500_000.0)
    items = [i for i in _capital_items(capital_rows)
             if i.agency_name == "Department of Transportation"]
    text = build_group_context(group, items, CAPITAL)
    assert text.splitlines() == [
        "Agency: Department of Transportation",
        "Total Recommended: $3.5M",
        "Items: 2",
        "",
        "Top items:",
        "- Rail yard: $2.0M",
        "- Bridge repair: $1.5M",
    ]


def test_group_context_limits_items(capital_rows):
    group = GroupAggregate("All", 3, 3_900_000.0)
    text = build_group_context(group, _capital_items(capital_rows), CAPITAL, top_n=1)
    bullets = [line for line in text.splitlines() if line.startswith("- ")]
    assert bullets == ["- Rail yard: $2.0M"]


def test_group_context_zero_top_n(capital_rows):
    group = GroupAggregate("All", 3, 3_900_000.0)
    text = build_group_context(group, _capital_items(capital_rows), CAPITAL, top_n=0)
    assert text.endswith("Top items:")


def test_item_context_drops_empty_lines(grant_rows):
    item = DISCRETIONARY.detail_fn(grant_rows[1])
    assert build_item_context(item, DISCRETIONARY).splitlines() == [
        "Grant: Friends of the Park",
        "Agency: Parks",
        "Amount: $125K",
        "Year: 2024",
    ]


def test_item_context_full_grant(grant_rows):
    text = build_item_context(DISCRETIONARY.detail_fn(grant_rows[0]), DISCRETIONARY)
    assert "Sponsor: Smith" in text
    assert "Approval Date: 2024-03-01" in text
    assert "Description: Playground" in text
