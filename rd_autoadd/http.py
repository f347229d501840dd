"""
HTTP plumbing shared by the Trakt, Torrentio and Real-Debrid clients.

Every client owns one ApiSession. The session enforces a minimum gap between
calls, applies a per-call timeout and turns requests exceptions and HTTP
status codes into the rd_autoadd.errors taxonomy, so callers only ever deal
with ProviderError subclasses.
"""

import logging
import os
import time
from typing import Any, Callable, Dict, Optional, TypeVar

import requests

from rd_autoadd.errors import (
    AuthError,
    ProviderBlockedError,
    ProviderError,
    RequestTimeoutError,
    TransientProviderError,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

USER_AGENT = "rd-autoadd/1.0 (+https://github.com/)"
MIN_API_INTERVAL_SEC = float(os.getenv("MIN_API_INTERVAL_SEC", "0.5"))
DEFAULT_TIMEOUT = 15

MAX_RETRIES = 3
INITIAL_BACKOFF_SEC = 2.0

TRANSIENT_STATUS = {429, 500, 502, 503, 504}


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:120]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)[:120]
    return str(body)[:120]


def raise_for_status(response: requests.Response, what: str) -> None:
    """Map a non-2xx response onto the provider error taxonomy."""
    status = response.status_code
    if 200 <= status < 300:
        return
    detail = _error_detail(response)
    message = f"{what}: HTTP {status} {detail}".rstrip()
    if status in TRANSIENT_STATUS:
        raise TransientProviderError(message, status=status)
    if status == 401:
        raise AuthError(message, status=status)
    if status == 403:
        raise ProviderBlockedError(message, status=status)
    raise ProviderError(message, status=status)


class ApiSession:
    """requests.Session wrapper with throttling and error mapping."""

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: int = DEFAULT_TIMEOUT,
        min_interval: float = MIN_API_INTERVAL_SEC,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.min_interval = min_interval
        self._last_api_call = 0.0
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        if headers:
            self.session.headers.update(headers)

    def _throttle(self) -> None:
        elapsed = time.time() - self._last_api_call
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self._last_api_call = time.time()

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> requests.Response:
        url = self.url(path)
        what = f"{method} {url}"
        self._throttle()
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(f"{what}: timeout ({e})") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientProviderError(f"{what}: connection error ({e})") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"{what}: {e}") from e
        raise_for_status(response, what)
        return response

    def get(self, path: str, **kwargs) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        return self.request("DELETE", path, **kwargs)


def is_rate_limit_or_timeout(error: TransientProviderError) -> bool:
    """Rate limits and timeouts, the only failures a commitment is retried on."""
    return error.status == 429 or isinstance(error, RequestTimeoutError)


def call_with_backoff(
    func: Callable[..., T],
    *args,
    what: str = "request",
    retries: int = MAX_RETRIES,
    initial_backoff: float = INITIAL_BACKOFF_SEC,
    retry_on: Optional[Callable[[TransientProviderError], bool]] = None,
    **kwargs,
) -> T:
    """
    Call func, retrying on TransientProviderError.

    retry_on narrows which transient errors are retried; the rest propagate
    at once. Non-idempotent calls pass is_rate_limit_or_timeout.

    The first retry waits initial_backoff seconds and each further retry
    doubles the wait (2s, 4s, 8s with the defaults). When the retries are
    used up the last TransientProviderError propagates. Every other error
    propagates immediately.
    """
    backoff = initial_backoff
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except TransientProviderError as e:
            if retry_on is not None and not retry_on(e):
                raise
            if attempt >= retries:
                log.error(f"{what} failed after {retries} retries: {e}")
                raise
            attempt += 1
            reason = "Rate limited" if e.status == 429 else "Transient error"
            log.warning(
                f"{reason} on {what}, waiting {backoff:g}s before retry {attempt}/{retries}..."
            )
            time.sleep(backoff)
            backoff *= 2
