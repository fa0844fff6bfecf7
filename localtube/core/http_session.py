"""Pooled HTTP sessions for channel image downloads and the catalog API."""

from typing import TYPE_CHECKING, Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

if TYPE_CHECKING:
    from localtube.core.config import Settings

DEFAULT_TIMEOUT = 30
RETRY_STATUSES = (429, 500, 502, 503, 504)
# Catalog inserts are not idempotent, so only safe methods are retried
RETRY_METHODS = frozenset({"HEAD", "GET", "OPTIONS"})
USER_AGENT = "localtube-ingest"

_sessions: dict[str, requests.Session] = {}
_timeouts: dict[str, float] = {}


def get_session(
    name: str = "default",
    timeout: float = DEFAULT_TIMEOUT,
    max_retries: int = 3,
    backoff_factor: float = 0.5,
) -> requests.Session:
    """
    Get or create a named session with retry logic.

    The first call for a name decides its timeout and retry policy; later
    calls return the cached session unchanged.

    Args:
        name: Session name (one per remote service)
        timeout: Default request timeout in seconds
        max_retries: Retries for connection errors and retryable statuses
        backoff_factor: Delay factor between retries

    Returns:
        Configured requests.Session instance
    """
    if name in _sessions:
        return _sessions[name]

    adapter = HTTPAdapter(
        max_retries=Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=RETRY_STATUSES,
            allowed_methods=RETRY_METHODS,
            raise_on_status=False,
        )
    )
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = USER_AGENT

    _sessions[name] = session
    _timeouts[name] = timeout
    return session


def configure_session(name: str, settings: "Settings") -> requests.Session:
    """Create the named session from the ``http_*`` settings."""
    return get_session(name, timeout=settings.http_timeout, max_retries=settings.http_max_retries)


def close_all_sessions() -> None:
    """Close all cached sessions."""
    for session in _sessions.values():
        session.close()
    _sessions.clear()
    _timeouts.clear()


def request(
    method: str,
    url: str,
    session_name: str = "default",
    timeout: float | None = None,
    **kwargs: Any,
) -> requests.Response:
    """
    Send a request through a named session.

    Args:
        method: HTTP method
        url: Request URL
        session_name: Session to use, created with defaults if missing
        timeout: Overrides the session's default timeout
        **kwargs: Passed through to ``requests.Session.request``

    Returns:
        requests.Response object
    """
    session = get_session(session_name)
    if timeout is None:
        timeout = _timeouts.get(session_name, DEFAULT_TIMEOUT)
    return session.request(method, url, timeout=timeout, **kwargs)


def get(url: str, session_name: str = "default", **kwargs: Any) -> requests.Response:
    """Send a GET request through a named session."""
    return request("GET", url, session_name=session_name, **kwargs)


def post(url: str, session_name: str = "default", **kwargs: Any) -> requests.Response:
    """Send a POST request through a named session."""
    return request("POST", url, session_name=session_name, **kwargs)
