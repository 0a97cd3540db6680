"""HTTP fetch client with a fixed identity and hard timeout."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from site_auditor.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    NETWORK_ERROR_MESSAGE,
    REQUEST_HEADERS,
    TIMEOUT_ERROR_MESSAGE,
)
from site_auditor.models import FetchErrorKind

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Outcome of a single GET: a response or a classified failure."""

    url: str
    success: bool
    status_code: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    html: str = ""
    final_url: Optional[str] = None
    elapsed: float = 0.0
    error: Optional[str] = None
    error_kind: Optional[FetchErrorKind] = None
    redirected: bool = False

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()

    @property
    def was_redirected(self) -> bool:
        return self.redirected and bool(self.final_url)


class FetchClient:
    """Issues single GET requests on behalf of the crawler.

    The client never retries and never filters by content type; callers
    decide what to do with non-HTML responses. Use it as an async context
    manager, or call ``aclose()`` when done:

        async with FetchClient() as client:
            result = await client.fetch("https://example.com")
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetch client.

        Args:
            timeout: Hard limit in seconds for the whole request
            headers: Extra headers merged over the fixed identity headers
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self.headers = {**REQUEST_HEADERS, **(headers or {})}
        self._client = httpx.AsyncClient(
            headers=self.headers,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        )

    @property
    def user_agent(self) -> str:
        return self.headers["User-Agent"]

    async def __aenter__(self) -> "FetchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a URL, classifying any failure.

        Args:
            url: Absolute URL to request

        Returns:
            FetchResult; ``success`` is False only for transport failures,
            HTTP error statuses are returned as regular responses.
        """
        start_time = time.monotonic()
        try:
            # wait_for cancels the in-flight request once the bound is hit
            response = await asyncio.wait_for(
                self._client.get(url), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"Timed out after {self.timeout}s: {url}")
            return self._failure(url, start_time, FetchErrorKind.TIMEOUT, TIMEOUT_ERROR_MESSAGE)
        except httpx.HTTPError as e:
            logger.warning(f"Network error for {url}: {e}")
            detail = str(e) or type(e).__name__
            return self._failure(
                url, start_time, FetchErrorKind.NETWORK_ERROR,
                f"{NETWORK_ERROR_MESSAGE}: {detail}",
            )
        except Exception as e:
            logger.warning(f"Unexpected fetch failure for {url}: {e}")
            return self._failure(
                url, start_time, FetchErrorKind.OTHER, str(e) or type(e).__name__
            )

        elapsed = time.monotonic() - start_time
        logger.debug(f"Response status for {url}: {response.status_code} ({elapsed:.2f}s)")

        return FetchResult(
            url=url,
            success=True,
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            html=response.text,
            final_url=str(response.url),
            elapsed=elapsed,
            redirected=bool(response.history),
        )

    @staticmethod
    def _failure(
        url: str, start_time: float, kind: FetchErrorKind, message: str
    ) -> FetchResult:
        return FetchResult(
            url=url,
            success=False,
            elapsed=time.monotonic() - start_time,
            error=message,
            error_kind=kind,
        )
