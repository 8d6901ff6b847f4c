from __future__ import annotations

# `logging` reports retries and failures without leaking full payloads.
import logging
# Typing helpers keep the client interface explicit.
from typing import Optional

# `requests` performs HTTP calls; we wrap it to centralize retries, timeouts, and error handling.
import requests
# `HTTPAdapter` lets us mount a retry policy onto a `requests.Session`.
from requests.adapters import HTTPAdapter
# `Retry` implements backoff for transient failures (rate limits, 5xx), without manual sleep loops.
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)


# Base class for every tick-local feed failure (timeout, connection error, non-2xx).
class FeedRequestError(RuntimeError):
    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FeedTimeoutError(FeedRequestError):
    """Raised when a feed does not answer within the client's timeout."""


class FeedDecodeError(ValueError):
    """Raised when a feed payload cannot be decoded into records."""


class FeedClient:
    """
    Minimal HTTP client for public, unauthenticated realtime feeds.

    - One `requests.Session` per client (keep-alive across ticks).
    - Every attempt is bounded by `timeout_s`; retries are bounded by `max_retries` and each
      backoff sleep is capped at `timeout_s`; `Retry-After` headers are not honored.
    - All failures surface as `FeedRequestError` so callers can treat them as tick-local.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 8.0,
        max_retries: int = 1,
        backoff_factor: float = 0.5,
        user_agent: str = "segmentwatch/0.1.0",
    ) -> None:
        self._timeout_s = float(timeout_s)

        self._session = requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

        retry = Retry(
            total=max_retries,
            connect=max_retries,
            read=max_retries,
            status=max_retries,
            # Delays grow 0.5s, 1s, ... between retries.
            backoff_factor=backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            backoff_max=self._timeout_s,
            respect_retry_after_header=False,
            # Do not raise inside urllib3; we surface a single `FeedRequestError` with context.
            raise_on_status=False,
        )
        self._session.mount("https://", HTTPAdapter(max_retries=retry))
        self._session.mount("http://", HTTPAdapter(max_retries=retry))

    def get_bytes(self, url: str) -> bytes:
        try:
            resp = self._session.get(url, timeout=self._timeout_s)
        except requests.exceptions.Timeout as e:
            raise FeedTimeoutError(
                f"Feed request timed out after {self._timeout_s:.1f}s url={url}", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            raise FeedRequestError(f"Feed request failed url={url}: {e}", url=url) from e

        if not 200 <= resp.status_code < 300:
            raise FeedRequestError(
                f"Feed request failed ({resp.status_code}) url={url} body={resp.text[:200]}",
                url=url,
                status_code=resp.status_code,
            )
        return resp.content

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "FeedClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
