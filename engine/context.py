"""Chat-context text built from a rollup row or a single detail row.

The text seeds a chat prompt, so it is plain newline-joined lines:

    Agency: Department of Transportation
    Total Recommended: $4.2B
    Items: 312

    Top items:
    - Highway and bridge capital program: $1.9B
    ...

Dataset-specific wording (labels, bullet text, item lines) comes from the
DatasetSpec; this module only decides the layout.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from engine.aggregation import GroupAggregate
from utils.formatting import format_compact

if TYPE_CHECKING:
    from engine.datasets import DatasetSpec

DEFAULT_TOP_N = 10


def build_group_context(group: GroupAggregate, items: Sequence[Any],
                        dataset: "DatasetSpec", top_n: int = DEFAULT_TOP_N) -> str:
    """Describe one rollup row and its largest *top_n* items."""
    lines = [
        f"{dataset.group_label}: {group.name}",
        f"{dataset.total_label}: {format_compact(group.total_amount)}",
        f"Items: {group.count}",
        "",
        "Top items:",
    ]
    lines.extend(f"- {dataset.item_bullet(item)}" for item in items[:max(top_n, 0)])
    return "\n".join(lines)


def build_item_context(item: Any, dataset: "DatasetSpec") -> str:
    """Describe one detail row; blank lines from the dataset are dropped."""
    return "\n".join(line for line in dataset.item_context(item) if line)
