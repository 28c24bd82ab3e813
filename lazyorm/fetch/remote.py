"""HTTP retrieval of remote payloads referenced by deferred fields."""
from __future__ import annotations

import time
from typing import Optional, Protocol

import httpx

from lazyorm.errors import FetchError
from lazyorm.observability.tracing import log_fetch_failure, log_fetch_result


class Fetcher(Protocol):
    """Anything that can turn a URL into bytes, raising FetchError on failure."""

    def fetch(self, url: str) -> bytes:
        ...


class HttpFetcher:
    """Blocking fetcher backed by a shared ``httpx.Client``.

    No retries. ``timeout=None`` waits indefinitely; pass a number of seconds
    to bound each request.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.Client] = None,
        user_agent: str = "lazyorm",
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(
                headers={"User-Agent": user_agent},
                timeout=timeout,
                follow_redirects=follow_redirects,
            )
        self._client = client

    def fetch(self, url: str) -> bytes:
        """GET ``url`` and return the response body."""
        start = time.perf_counter()
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            reason = f"HTTP {exc.response.status_code}"
            log_fetch_failure(url=url, reason=reason)
            raise FetchError(url, reason) from exc
        except httpx.HTTPError as exc:
            log_fetch_failure(url=url, reason=str(exc))
            raise FetchError(url, str(exc) or type(exc).__name__) from exc
        content = response.content
        log_fetch_result(
            url=url,
            status=response.status_code,
            bytes_read=len(content),
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
        return content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
