"""HTTP utilities for the fiscal dashboard tools.

Page retries belong to the paginated loader: it catches a failed range read,
sleeps ``RetryStrategy.delay_for(attempt)`` (interruptible by cancellation)
and asks again, at most ``max_retries`` times per page.  The urllib3 retry
mounted on the source's session is a separate, optional layer that is off
unless ``SourceConfig.transport_retries`` is raised, so the two never
multiply each other's attempts.
"""

from typing import Optional, Sequence, Dict
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry as URLRetry

# Gateway and rate-limit statuses a PostgREST host returns while it recovers
RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


class RetryStrategy:
    """Bounded exponential backoff for range reads."""

    def __init__(self, max_retries: int = 1, backoff_factor: float = 0.5,
                 status_forcelist: Optional[Sequence[int]] = None):
        """
        Args:
            max_retries: Extra attempts after the first one fails (default: 1)
            backoff_factor: Delay before the first retry, doubled for each
                            later one (default: 0.5 -> 0.5s, 1s, 2s)
            status_forcelist: Response statuses the transport layer retries
                              (default: RETRYABLE_STATUSES)
        """
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.status_forcelist = list(status_forcelist or RETRYABLE_STATUSES)

    def get_retry_object(self) -> URLRetry:
        """urllib3 Retry for the session adapter.

        ``raise_on_status`` is off, so once retries run out (immediately when
        ``max_retries`` is 0) the last error response reaches the caller and
        ``raise_for_status()`` reports its real status code.
        """
        return URLRetry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=self.status_forcelist,
            allowed_methods=["GET"],
            raise_on_status=False,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep before retry number *attempt* (0-based)."""
        return self.backoff_factor * (2 ** attempt)


class SessionManager:
    """Lazily built ``requests.Session`` shared by every page read of a source.

    Sources keep one manager for their lifetime so consecutive pages reuse
    pooled keep-alive connections to the REST host.
    """

    def __init__(self, retry_strategy: Optional[RetryStrategy] = None,
                 pool_connections: int = 4, pool_maxsize: int = 8,
                 headers: Optional[Dict[str, str]] = None):
        self.retry_strategy = retry_strategy or RetryStrategy(max_retries=0)
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        # Copied so later edits by the caller do not leak into requests
        self.headers = dict(headers or {})
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            adapter = HTTPAdapter(
                max_retries=self.retry_strategy.get_retry_object(),
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize,
            )
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            self._session = session
        return self._session

    def close(self) -> None:
        """Close the pooled connections; the next ``session`` access reopens."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
