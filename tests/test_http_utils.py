"""
Tests for HTTP utilities — utils/http.py

Tests RetryStrategy and SessionManager without requiring actual network calls.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.http import RetryStrategy, SessionManager


# ── RetryStrategy tests ──────────────────────────────────────────────────────

class TestRetryStrategy:
    def test_defaults(self):
        rs = RetryStrategy()
        assert rs.max_retries == 1
        assert rs.backoff_factor == 0.5
        assert 429 in rs.status_forcelist
        assert 503 in rs.status_forcelist

    def test_custom_params(self):
        rs = RetryStrategy(max_retries=5, backoff_factor=1.0,
                           status_forcelist=[500, 502])
        assert rs.max_retries == 5
        assert rs.status_forcelist == [500, 502]

    def test_get_retry_object(self):
        rs = RetryStrategy(max_retries=4, backoff_factor=3.0)
        retry = rs.get_retry_object()
        assert retry.total == 4
        assert retry.backoff_factor == 3.0
        assert "GET" in retry.allowed_methods

    def test_exhausted_retry_returns_last_response(self):
        retry = RetryStrategy(max_retries=0).get_retry_object()
        assert retry.total == 0
        assert retry.raise_on_status is False
        assert 503 in retry.status_forcelist

    @pytest.mark.parametrize("attempt, expected", [(0, 0.5), (1, 1.0), (2, 2.0), (3, 4.0)])
    def test_delay_for_doubles(self, attempt, expected):
        rs = RetryStrategy(backoff_factor=0.5)
        assert rs.delay_for(attempt) == expected

    def test_delay_for_zero_factor(self):
        assert RetryStrategy(backoff_factor=0.0).delay_for(5) == 0.0


# ── SessionManager tests ─────────────────────────────────────────────────────

class TestSessionManager:
    def test_session_cached(self):
        """Accessing .session twice returns the same object."""
        sm = SessionManager()
        s1 = sm.session
        s2 = sm.session
        assert s1 is s2
        sm.close()

    def test_close_resets_session(self):
        sm = SessionManager()
        first = sm.session
        sm.close()
        assert sm._session is None
        assert sm.session is not first
        sm.close()

    def test_default_headers_applied(self):
        sm = SessionManager(headers={"apikey": "secret", "Accept": "application/json"})
        assert sm.session.headers["apikey"] == "secret"
        assert sm.session.headers["Accept"] == "application/json"
        sm.close()

    def test_headers_copied(self):
        headers = {"apikey": "a"}
        sm = SessionManager(headers=headers)
        headers["apikey"] = "b"
        assert sm.session.headers["apikey"] == "a"
        sm.close()

    def test_transport_retries_off_by_default(self):
        sm = SessionManager()
        adapter = sm.session.get_adapter("https://example.supabase.co")
        assert adapter.max_retries.total == 0
        sm.close()

    def test_adapter_uses_retry_strategy(self):
        sm = SessionManager(retry_strategy=RetryStrategy(max_retries=0))
        adapter = sm.session.get_adapter("https://example.supabase.co")
        assert adapter.max_retries.total == 0
        sm.close()

    def test_context_manager_closes(self):
        with SessionManager() as sm:
            _ = sm.session
        assert sm._session is None
