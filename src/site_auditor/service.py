"""Start, poll and report on crawl sessions."""

import asyncio
import logging
import random
import string
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

from site_auditor.config import Config, settings
from site_auditor.fetcher import FetchClient
from site_auditor.models import AnalysisReport, CrawlSession, now_ms
from site_auditor.report_builder import ReportBuilder
from site_auditor.screenshots import ScreenshotCapture, get_screenshot_capture
from site_auditor.session_store import SessionStore, default_store
from site_auditor.site_crawler import SiteCrawler

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class SiteAuditorError(Exception):
    """Base error for the site auditor."""


class InvalidURLError(SiteAuditorError, ValueError):
    """Raised when a test is requested for a URL that cannot be crawled."""


def validate_url(url: str) -> str:
    """Check that ``url`` is an absolute http(s) URL.

    Returns:
        The URL with surrounding whitespace removed

    Raises:
        InvalidURLError: If the URL is empty, relative or not http(s)
    """
    url = (url or "").strip()
    if not url:
        raise InvalidURLError("URL is required")
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL format: {url}") from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidURLError(f"Invalid URL format: {url}")
    return url


def generate_test_id() -> str:
    """Id of the form ``test_<epoch ms>_<random base36>``."""
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"test_{now_ms()}_{suffix}"


class AuditService:
    """Entry point for callers: starts crawls and serves their state.

    Each started test runs as its own asyncio task, so several sessions can
    crawl concurrently while callers poll ``get_status``.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        config: Optional[Config] = None,
        fetch_client_factory: Optional[Callable[[], FetchClient]] = None,
        screenshot_factory: Optional[Callable[[], ScreenshotCapture]] = None,
    ):
        """Initialize the service.

        Args:
            store: Session store (process-wide store if None)
            config: Crawl configuration (environment settings if None)
            fetch_client_factory: Builds one HTTP client per session
            screenshot_factory: Builds one screenshot backend per session
        """
        self.store = store if store is not None else default_store
        self.config = config or settings
        self.fetch_client_factory = fetch_client_factory or (
            lambda: FetchClient(timeout=self.config.request_timeout)
        )
        self.screenshot_factory = screenshot_factory or (
            lambda: get_screenshot_capture(
                self.config.screenshot_backend, self.config.screenshot_dir
            )
        )
        self.report_builder = ReportBuilder()
        # Strong references keep running tasks from being garbage collected
        self._tasks: Dict[str, asyncio.Task] = {}

    def start_test(self, url: str) -> str:
        """Validate ``url`` and start crawling it in the background.

        Must be called from within a running event loop.

        Returns:
            The new test id

        Raises:
            InvalidURLError: If the URL is not an absolute http(s) URL
        """
        url = validate_url(url)
        asyncio.get_running_loop()  # RuntimeError before any session exists

        test_id = generate_test_id()
        while test_id in self.store:
            test_id = generate_test_id()

        crawler = SiteCrawler(
            store=self.store,
            fetch_client=self.fetch_client_factory(),
            screenshot_capture=self.screenshot_factory(),
            max_pages=self.config.max_pages,
            rate_limit=self.config.request_delay,
            timeout=self.config.request_timeout,
            max_screenshots=self.config.max_screenshots,
        )

        crawler.open_session(url, test_id)
        task = asyncio.create_task(self._run(crawler, url, test_id))
        self._tasks[test_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(test_id, None))

        logger.info(f"Started test {test_id} for {url}")
        return test_id

    async def _run(self, crawler: SiteCrawler, url: str, test_id: str) -> None:
        try:
            await crawler.crawl_site(url, test_id)
        finally:
            await crawler.fetch_client.aclose()

    def get_status(self, test_id: str) -> Optional[dict]:
        """Polling view of a session, or None if unknown."""
        session = self.store.get(test_id)
        return session.status_dict() if session else None

    def get_results(self, test_id: str) -> Optional[CrawlSession]:
        """Full session snapshot, or None if unknown."""
        return self.store.get(test_id)

    def get_report(self, test_id: str) -> Optional[AnalysisReport]:
        """Report for a completed session; None if unknown or not complete."""
        session = self.store.get(test_id)
        if session is None:
            return None
        return self.report_builder.build(session)

    async def wait(self, test_id: str) -> Optional[CrawlSession]:
        """Wait for a session started by this service to finish."""
        task = self._tasks.get(test_id)
        if task is not None:
            await task
        return self.store.get(test_id)
