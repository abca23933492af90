"""
Load accounting: what one full-table load did, how long it took, and why it
stopped.

The loader fills a LoadReport as it pages through a table; the engine keeps
the finished report next to its load status so the API and CLI can show how
many pages and retries a dashboard needed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LoadReport:
    """Structured summary of one paginated load."""

    dataset: str
    table: str = ""
    status: str = "not_started"               # started | completed | failed | cancelled
    elapsed_seconds: float = 0.0
    pages_fetched: int = 0
    rows_loaded: int = 0
    retries: int = 0
    errors: list[str] = field(default_factory=list)

    # ── helpers ───────────────────────────────────────────────────────────

    def add_page(self, row_count: int) -> None:
        self.pages_fetched += 1
        self.rows_loaded += row_count

    def add_retry(self, message: str) -> None:
        self.errors.append(message)
        self.retries += 1

    def console_summary(self) -> str:
        """One-line summary suitable for the terminal."""
        parts = [
            f"{self.rows_loaded:,} rows",
            f"{self.pages_fetched:,} pages",
            f"{self.elapsed_seconds:.1f}s",
        ]
        if self.retries:
            parts.append(f"{self.retries} retries")
        if self.status not in ("completed", "started"):
            parts.append(self.status)
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "dataset": self.dataset,
            "table": self.table,
            "status": self.status,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "pages_fetched": self.pages_fetched,
            "rows_loaded": self.rows_loaded,
            "retries": self.retries,
        }
        if self.errors:
            d["errors"] = list(self.errors)
        return d
