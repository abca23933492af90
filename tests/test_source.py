"""
Tests for engine/source.py — PostgREST and in-memory tabular sources.

PostgrestSource is exercised against a MagicMock session, so no request ever
leaves the process.
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from engine.source import (
    LoadError,
    MemorySource,
    PostgrestSource,
    SourceError,
    build_select,
)
from utils.config import SourceConfig


def _source_config(url="https://example.supabase.co/", key="anon-key"):
    cfg = SourceConfig()
    cfg.url = url
    cfg.api_key = key
    return cfg


def _source_with_response(payload=None, exc=None, json_exc=None):
    """PostgrestSource whose session.get returns *payload* (or raises)."""
    resp = MagicMock()
    if json_exc is not None:
        resp.json.side_effect = json_exc
    else:
        resp.json.return_value = payload
    manager = MagicMock()
    if exc is not None:
        manager.session.get.side_effect = exc
    else:
        manager.session.get.return_value = resp
    return PostgrestSource(_source_config(), session_manager=manager), manager, resp


# ── build_select ──────────────────────────────────────────────────────────────

def test_build_select_star():
    assert build_select("*") == "*"


def test_build_select_quotes_names_with_spaces():
    assert build_select(["id", "Grant Amount", "agency_name"]) == 'id,"Grant Amount",agency_name'


def test_build_select_escapes_quotes():
    assert build_select(['odd"name']) == '"odd""name"'


# ── PostgrestSource ───────────────────────────────────────────────────────────

class TestPostgrestSource:
    def test_requires_url(self):
        with pytest.raises(ValueError):
            PostgrestSource(_source_config(url=""))

    def test_auth_headers(self):
        source = PostgrestSource(_source_config())
        headers = source._sessions.headers
        assert headers["apikey"] == "anon-key"
        assert headers["Authorization"] == "Bearer anon-key"
        source.close()

    def test_no_auth_headers_without_key(self):
        source = PostgrestSource(_source_config(key=""))
        assert "apikey" not in source._sessions.headers
        source.close()

    def test_range_request_shape(self):
        source, manager, _ = _source_with_response([{"id": 1}])
        rows = source.read_range("Discretionary", ["id", "Grant Amount"], 2000, 1000,
                                 timeout=12.5, order="id")
        assert rows == [{"id": 1}]
        manager.session.get.assert_called_once_with(
            "https://example.supabase.co/rest/v1/Discretionary",
            params={"select": 'id,"Grant Amount"', "offset": 2000,
                    "limit": 1000, "order": "id"},
            timeout=12.5,
        )

    def test_no_order_param_when_unset(self):
        source, manager, _ = _source_with_response([])
        source.read_range("Revenue", "*", 0, 10)
        params = manager.session.get.call_args.kwargs["params"]
        assert "order" not in params

    def test_http_error_becomes_source_error(self):
        source, _, resp = _source_with_response([])
        resp.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        with pytest.raises(SourceError, match="Revenue"):
            source.read_range("Revenue", "*", 0, 10)

    def test_transport_error_becomes_source_error(self):
        source, _, _ = _source_with_response(exc=requests.ConnectionError("refused"))
        with pytest.raises(SourceError):
            source.read_range("Revenue", "*", 0, 10)

    def test_timeout_becomes_source_error(self):
        source, _, _ = _source_with_response(exc=requests.Timeout("slow"))
        with pytest.raises(LoadError):
            source.read_range("Revenue", "*", 0, 10, timeout=0.1)

    def test_invalid_json_becomes_source_error(self):
        source, _, _ = _source_with_response(json_exc=ValueError("bad json"))
        with pytest.raises(SourceError, match="not JSON"):
            source.read_range("Revenue", "*", 0, 10)

    def test_non_list_payload_rejected(self):
        source, _, _ = _source_with_response({"message": "permission denied"})
        with pytest.raises(SourceError, match="JSON array"):
            source.read_range("Revenue", "*", 0, 10)

    def test_context_manager_closes_sessions(self):
        source, manager, _ = _source_with_response([])
        with source:
            pass
        manager.close.assert_called_once()


# ── MemorySource ──────────────────────────────────────────────────────────────

class TestMemorySource:
    def test_pages_and_records_requests(self):
        source = MemorySource({"t": [{"id": i} for i in range(5)]})
        assert source.read_range("t", "*", 0, 2) == [{"id": 0}, {"id": 1}]
        assert source.read_range("t", "*", 4, 2) == [{"id": 4}]
        assert source.read_range("t", "*", 6, 2) == []
        assert source.requests == [("t", 0, 2), ("t", 4, 2), ("t", 6, 2)]

    def test_projection(self):
        source = MemorySource({"t": [{"id": 1, "a": "x", "b": "y"}]})
        assert source.read_range("t", ["id", "b", "missing"], 0, 10) == [
            {"id": 1, "b": "y", "missing": None}
        ]

    def test_unknown_table(self):
        with pytest.raises(SourceError, match="unknown table"):
            MemorySource({}).read_range("nope", "*", 0, 10)

    def test_returned_rows_are_copies(self):
        rows = [{"id": 1}]
        source = MemorySource({"t": rows})
        source.read_range("t", "*", 0, 1)[0]["id"] = 99
        assert rows[0]["id"] == 1
