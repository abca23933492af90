"""
Tabular data sources for the dashboard engine.

A source answers one question: "give me rows [offset, offset + limit) of this
table, projected to these columns".  The loader never interprets the rows; it
only counts them to decide when the table is exhausted.

  - TabularSource: the protocol every source implements.
  - PostgrestSource: Supabase/PostgREST REST reads over a pooled requests
    session.
  - MemorySource: serves pages from in-process lists (fixtures, offline use).

Every failure a source can hit is raised as SourceError so the loader has a
single exception type to retry on and report.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

import requests

from utils.config import SourceConfig
from utils.http import RetryStrategy, SessionManager
from utils.patterns import NEEDS_QUOTING

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class LoadError(Exception):
    """Base class for anything that stops a full-table load."""


class SourceError(LoadError):
    """A range read failed (transport error, bad status, bad payload)."""


class LoadCancelled(LoadError):
    """The load was cancelled between pages."""


class TabularSource(Protocol):
    def read_range(
        self,
        table: str,
        columns: str | Sequence[str],
        offset: int,
        limit: int,
        timeout: float | None = None,
        order: str | None = None,
    ) -> list[Row]:
        """Return up to *limit* rows starting at *offset*, or raise SourceError."""
        ...


def build_select(columns: str | Sequence[str]) -> str:
    """Render a column projection as a PostgREST ``select`` value.

    Names containing spaces or punctuation are double-quoted:

        build_select(["id", "Grant Amount"]) -> 'id,"Grant Amount"'
        build_select("*") -> '*'
    """
    if isinstance(columns, str):
        return columns
    parts = []
    for col in columns:
        if NEEDS_QUOTING.search(col):
            parts.append('"' + col.replace('"', '""') + '"')
        else:
            parts.append(col)
    return ",".join(parts)


class PostgrestSource:
    """Range reads against a Supabase/PostgREST ``/rest/v1`` endpoint.

    Usage::

        cfg = SourceConfig()
        cfg.url = "https://example.supabase.co"
        cfg.api_key = "..."
        with PostgrestSource(cfg) as source:
            rows = source.read_range("Revenue", "*", 0, 1000)
    """

    def __init__(self, config: SourceConfig,
                 session_manager: SessionManager | None = None) -> None:
        if not config.url:
            raise ValueError("PostgrestSource requires a base URL")
        self.config = config
        self.base_url = f"{config.url.rstrip('/')}/{config.rest_path.strip('/')}"
        headers = {"Accept": "application/json"}
        if config.api_key:
            headers["apikey"] = config.api_key
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._sessions = session_manager or SessionManager(
            retry_strategy=RetryStrategy(max_retries=config.transport_retries),
            pool_connections=config.pool_connections,
            pool_maxsize=config.pool_maxsize,
            headers=headers,
        )

    def read_range(
        self,
        table: str,
        columns: str | Sequence[str],
        offset: int,
        limit: int,
        timeout: float | None = None,
        order: str | None = None,
    ) -> list[Row]:
        url = f"{self.base_url}/{table}"
        params: dict[str, Any] = {
            "select": build_select(columns),
            "offset": offset,
            "limit": limit,
        }
        if order:
            params["order"] = order
        try:
            resp = self._sessions.session.get(url, params=params, timeout=timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise SourceError(f"{table} [{offset}, {offset + limit}): {exc}") from exc
        except ValueError as exc:
            raise SourceError(f"{table}: response is not JSON") from exc
        if not isinstance(payload, list):
            raise SourceError(
                f"{table}: expected a JSON array, got {type(payload).__name__}"
            )
        return payload

    def close(self) -> None:
        self._sessions.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class MemorySource:
    """Serve range reads from in-process row lists keyed by table name.

    Column projection is honoured for explicit column lists; ``order`` is
    ignored because list order is already stable.
    """

    def __init__(self, tables: Mapping[str, Sequence[Row]]) -> None:
        self._tables = {name: list(rows) for name, rows in tables.items()}
        self.requests: list[tuple[str, int, int]] = []

    def read_range(
        self,
        table: str,
        columns: str | Sequence[str],
        offset: int,
        limit: int,
        timeout: float | None = None,
        order: str | None = None,
    ) -> list[Row]:
        self.requests.append((table, offset, limit))
        try:
            rows = self._tables[table]
        except KeyError:
            raise SourceError(f"unknown table: {table}") from None
        page = rows[offset:offset + limit]
        if isinstance(columns, str):
            return [dict(r) for r in page]
        return [{c: r.get(c) for c in columns} for r in page]
