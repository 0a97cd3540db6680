"""Site crawler with breadth-first search and discovery provenance."""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Set

from site_auditor.constants import (
    ANALYZING_PROGRESS,
    COMPLETE_PROGRESS,
    CRAWL_PROGRESS_SHARE,
    DEFAULT_MAX_SCREENSHOTS,
    DEFAULT_PAGE_BUDGET,
    DEFAULT_REQUEST_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    FATAL_GENERIC_MESSAGE,
    FATAL_NO_PAGES_MESSAGE,
    GENERIC_FETCH_ERROR_MESSAGE,
    INITIAL_SOURCE,
    META_TAG_LINK_TEXT,
    PAGE_LINK_SAMPLE_SIZE,
    REDIRECT_LINK_TEXT,
    SCREENSHOTS_DONE_PROGRESS,
    SEED_LINK_TEXT,
)
from site_auditor.extractor import extract_features, normalize_url, origin_of, parse_html
from site_auditor.fetcher import FetchClient, FetchResult
from site_auditor.issue_detector import (
    IssueDetector,
    non_html_issue,
    split_findings,
    transport_issue,
)
from site_auditor.models import (
    CrawlSession,
    DetectedIssue,
    DiscoveryEvent,
    DiscoveryMethod,
    FetchErrorKind,
    IssueCategory,
    PageRecord,
    SessionStatus,
    VisualAction,
    now_ms,
)
from site_auditor.narration import CrawlNarrator
from site_auditor.screenshots import PlaceholderScreenshotCapture, ScreenshotCapture
from site_auditor.session_store import SessionStore, default_store

logger = logging.getLogger(__name__)


class SiteCrawler:
    """Crawls one site using breadth-first search (BFS) and audits each page.

    The frontier is a strict FIFO queue, so pages are processed level by
    level:
    - depth 0: the starting page
    - depth 1: all pages linked from it
    - depth 2: all pages linked from depth 1
    - etc.

    One instance drives exactly one session and is its only writer. Pages
    are fetched strictly one at a time.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        fetch_client: Optional[FetchClient] = None,
        detector: Optional[IssueDetector] = None,
        screenshot_capture: Optional[ScreenshotCapture] = None,
        max_pages: int = DEFAULT_PAGE_BUDGET,
        rate_limit: float = DEFAULT_REQUEST_DELAY_SECONDS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        max_screenshots: int = DEFAULT_MAX_SCREENSHOTS,
        on_progress: Optional[Callable[[int, int, str], None]] = None,
    ):
        """Initialize the site crawler.

        Args:
            store: Session store to write to (process-wide store if None)
            fetch_client: HTTP client; one is created per crawl if None
            detector: Issue detector
            screenshot_capture: Screenshot backend (placeholder if None)
            max_pages: Page budget
            rate_limit: Seconds to wait between requests
            timeout: Per-request timeout when the crawler creates its client
            max_screenshots: Number of leading pages sent for screenshots
            on_progress: Optional callback (pages_visited, max_pages, url)
        """
        self.store = store if store is not None else default_store
        self.fetch_client = fetch_client
        self.detector = detector or IssueDetector()
        self.screenshot_capture = screenshot_capture or PlaceholderScreenshotCapture()
        self.max_pages = max_pages
        self.rate_limit = rate_limit
        self.timeout = timeout
        self.max_screenshots = max_screenshots
        self.on_progress = on_progress

        self.test_id: Optional[str] = None
        self.base_origin: str = ""
        self.queue: Deque[DiscoveryEvent] = deque()
        self.queued_urls: Set[str] = set()
        self.visited_urls: Set[str] = set()
        self.visited_count = 0
        self.narrator = CrawlNarrator(self._append_action)

    def open_session(self, start_url: str, test_id: str) -> None:
        """Create the session record so it can be polled before crawling starts.

        Raises:
            ValueError: If the store already holds ``test_id``
        """
        self.test_id = test_id
        self.base_origin = origin_of(normalize_url(start_url))
        self.store.create(CrawlSession(test_id=test_id, base_url=self.base_origin))

    async def crawl_site(self, start_url: str, test_id: str) -> CrawlSession:
        """Crawl a site and record everything under ``test_id``.

        Page failures are recorded and skipped; the session ends in
        ``error`` only if no page could be fetched successfully or an
        unexpected exception escapes the loop.

        Args:
            start_url: Absolute URL to start from
            test_id: Session id; the record is created here unless
                open_session() already did

        Returns:
            Snapshot of the session in its terminal state
        """
        start_url = normalize_url(start_url)
        if self.test_id != test_id:
            self.open_session(start_url, test_id)

        owns_client = self.fetch_client is None
        if owns_client:
            self.fetch_client = FetchClient(timeout=self.timeout)

        logger.info(f"Starting site crawl from: {start_url}")
        logger.info(f"Max pages: {self.max_pages}, rate limit: {self.rate_limit}s")

        try:
            await self._crawl(start_url)
        except Exception as e:
            logger.exception(f"Crawl failed for {start_url}")
            self._fail(str(e) or FATAL_GENERIC_MESSAGE)
        finally:
            if owns_client:
                await self.fetch_client.aclose()
                self.fetch_client = None

        return self.store.get(test_id)

    async def _crawl(self, start_url: str) -> None:
        self._enqueue(DiscoveryEvent(
            url=start_url,
            discovered_from=INITIAL_SOURCE,
            link_text=SEED_LINK_TEXT,
            discovery_method=DiscoveryMethod.INITIAL,
            depth=0,
        ))
        self.narrator.started(start_url)

        current_depth = 0

        while self.queue and self.visited_count < self.max_pages:
            discovery = self._dequeue()
            url = discovery.url

            # Frontier dedup is by exact URL, so this is only a guard
            if url in self.visited_urls:
                continue

            if discovery.depth > current_depth:
                logger.info(f"--- Moving to depth {discovery.depth} ---")
                current_depth = discovery.depth

            self.visited_urls.add(url)
            self.visited_count += 1

            with self.store.mutate(self.test_id) as session:
                session.current_page = url
                session.pages_found = self.visited_count
                session.progress = self.visited_count / self.max_pages * CRAWL_PROGRESS_SHARE
                session.frontier_size = len(self.queue)

            logger.info(
                f"[D{discovery.depth}] Crawling ({self.visited_count}/{self.max_pages}): {url} "
                f"(from: {discovery.discovered_from}, method: {discovery.discovery_method.value})"
            )
            self.narrator.navigating(url, self.visited_count, self.max_pages, discovery.link_text)

            page = await self._crawl_page(discovery)

            with self.store.mutate(self.test_id) as session:
                session.pages.append(page)
                session.frontier_size = len(self.queue)

            if self.on_progress:
                self.on_progress(self.visited_count, self.max_pages, url)

            if self.queue and self.visited_count < self.max_pages:
                await self._pace()

        await self._finish()

    async def _pace(self) -> None:
        """Politeness delay between two fetches."""
        await asyncio.sleep(self.rate_limit)

    async def _crawl_page(self, discovery: DiscoveryEvent) -> PageRecord:
        """Fetch and analyze one page, converting every failure into data."""
        url = discovery.url
        try:
            result = await self.fetch_client.fetch(url)

            if not result.success:
                return self._failed_page(discovery, result.error_kind, result.error)

            if not result.is_html:
                content_type = result.content_type
                logger.info(f"  Skipping non-HTML content: {content_type or 'unknown'}")
                self.narrator.skipped_non_html(url, content_type)
                return self._page_record(
                    discovery,
                    title="Non-HTML Content",
                    status_code=result.status_code,
                    errors=[non_html_issue(content_type)],
                    final_url=result.final_url,
                )

            return self._analyze_page(discovery, result)

        except Exception as e:
            logger.warning(f"Error crawling {url}: {e}", exc_info=True)
            return self._failed_page(discovery, FetchErrorKind.OTHER, str(e))

    def _analyze_page(self, discovery: DiscoveryEvent, result: FetchResult) -> PageRecord:
        url = discovery.url
        page_url = result.final_url or url
        html = result.html
        logger.debug(f"  Fetched {len(html)} characters from {url}")
        self.narrator.scanning(url, len(html.encode("utf-8", errors="ignore")))

        soup = parse_html(html)
        features = extract_features(html, page_url, self.base_origin, soup=soup)
        findings = self.detector.detect(html, result.status_code, page_url=page_url, soup=soup)
        errors, visual_issues, console_errors = split_findings(findings)

        self._record_redirect(discovery, result)
        new_links = self._enqueue_discoveries(discovery, features)

        link_sample = list(dict.fromkeys(
            link.href for link in features.links if link.href not in self.visited_urls
        ))[:PAGE_LINK_SAMPLE_SIZE]

        if new_links:
            logger.info(f"  -> Queued {new_links} new links for depth {discovery.depth + 1}")
        self.narrator.links_discovered(url, new_links)
        self.narrator.accessibility_checked(url, sum(
            1 for issue in visual_issues if issue.category == IssueCategory.ACCESSIBILITY
        ))
        self.narrator.seo_checked(
            url, any(i.code in ("missing_title", "missing_meta_description") for i in visual_issues)
        )
        self.narrator.interactive_elements(url, features.button_count, len(features.forms))
        for index, form in enumerate(features.forms, 1):
            self.narrator.testing_form(url, index, form)

        logger.info(
            f"  Status {result.status_code} - {len(findings)} findings, "
            f"{len(features.links)} same-origin links"
        )

        return self._page_record(
            discovery,
            title=features.title,
            status_code=result.status_code,
            links=link_sample,
            errors=errors,
            visual_issues=visual_issues,
            console_errors=console_errors,
            final_url=result.final_url,
        )

    def _failed_page(
        self, discovery: DiscoveryEvent, kind: Optional[FetchErrorKind], message: Optional[str]
    ) -> PageRecord:
        kind = kind or FetchErrorKind.OTHER
        message = message or GENERIC_FETCH_ERROR_MESSAGE
        logger.warning(f"  Failed ({kind.value}): {message}")
        self.narrator.page_failed(discovery.url, message)
        return self._page_record(
            discovery,
            title="Error",
            status_code=0,
            errors=[transport_issue(kind, message)],
        )

    @staticmethod
    def _page_record(
        discovery: DiscoveryEvent,
        title: str,
        status_code: int,
        links: Optional[List[str]] = None,
        errors: Optional[List[DetectedIssue]] = None,
        visual_issues: Optional[List[DetectedIssue]] = None,
        console_errors: Optional[List[DetectedIssue]] = None,
        final_url: Optional[str] = None,
    ) -> PageRecord:
        return PageRecord(
            url=discovery.url,
            title=title,
            status_code=status_code,
            links=links or [],
            errors=errors or [],
            visual_issues=visual_issues or [],
            console_errors=console_errors or [],
            discovered_from=discovery.discovered_from,
            link_text=discovery.link_text,
            discovery_method=discovery.discovery_method,
            depth=discovery.depth,
            final_url=final_url,
        )

    def _enqueue_discoveries(self, discovery: DiscoveryEvent, features) -> int:
        """Queue crawlable anchors and <link> references found on a page.

        Returns:
            Number of anchors newly queued
        """
        queued = 0
        for link in features.crawlable_links:
            if self._enqueue(DiscoveryEvent(
                url=link.href,
                discovered_from=discovery.url,
                link_text=link.text,
                discovery_method=DiscoveryMethod.HTML_LINK,
                depth=discovery.depth + 1,
            )):
                queued += 1
                logger.debug(f'  Discovered link: "{link.text}" -> {link.href}')

        for href in features.meta_links:
            self._enqueue(DiscoveryEvent(
                url=href,
                discovered_from=discovery.url,
                link_text=META_TAG_LINK_TEXT,
                discovery_method=DiscoveryMethod.META_TAG,
                depth=discovery.depth + 1,
            ))

        return queued

    def _record_redirect(self, discovery: DiscoveryEvent, result: FetchResult) -> None:
        """Mark a same-origin redirect target as visited.

        The target's content was just analyzed under the requested URL, so
        it is recorded in the crawl path but never fetched again.
        """
        if not result.was_redirected:
            return
        target = normalize_url(result.final_url)
        if (
            target == discovery.url
            or origin_of(target) != self.base_origin
            or target in self.visited_urls
            or target in self.queued_urls
        ):
            return

        self.visited_urls.add(target)
        event = DiscoveryEvent(
            url=target,
            discovered_from=discovery.url,
            link_text=REDIRECT_LINK_TEXT,
            discovery_method=DiscoveryMethod.REDIRECT,
            depth=discovery.depth + 1,
        )
        with self.store.mutate(self.test_id) as session:
            session.crawl_path.append(event)
        logger.info(f"  Redirected to {target}")

    def _enqueue(self, event: DiscoveryEvent) -> bool:
        """Append a discovery to the frontier unless already visited or queued."""
        if event.url in self.visited_urls or event.url in self.queued_urls:
            return False

        self.queue.append(event)
        self.queued_urls.add(event.url)
        with self.store.mutate(self.test_id) as session:
            session.crawl_path.append(event)
            session.frontier_size = len(self.queue)
        return True

    def _dequeue(self) -> DiscoveryEvent:
        event = self.queue.popleft()
        self.queued_urls.discard(event.url)
        return event

    def _append_action(self, action: VisualAction) -> None:
        with self.store.mutate(self.test_id) as session:
            session.actions.append(action)

    async def _finish(self) -> None:
        """Move a crawled session through analyzing to complete."""
        with self.store.mutate(self.test_id) as session:
            pages = list(session.pages)

        if not any(page.is_success for page in pages):
            logger.error(f"No page of {self.base_origin} could be fetched successfully")
            self._fail(FATAL_NO_PAGES_MESSAGE)
            return

        with self.store.mutate(self.test_id) as session:
            session.status = SessionStatus.ANALYZING
            session.progress = ANALYZING_PROGRESS

        self.narrator.report_started(self.base_origin, len(pages))

        await self._capture_screenshots(pages[:self.max_screenshots])

        with self.store.mutate(self.test_id) as session:
            session.progress = SCREENSHOTS_DONE_PROGRESS

        with self.store.mutate(self.test_id) as session:
            session.status = SessionStatus.COMPLETE
            session.progress = COMPLETE_PROGRESS
            session.end_time = now_ms()

        logger.info(f"Crawl complete! Processed {len(pages)} pages")

    async def _capture_screenshots(self, pages: List[PageRecord]) -> None:
        """Screenshot failures are logged and leave the reference unset."""
        try:
            for page in pages:
                try:
                    reference = await self.screenshot_capture.capture(page)
                except Exception as e:
                    logger.warning(f"Failed to capture screenshot for {page.url}: {e}")
                    continue
                if reference:
                    with self.store.mutate(self.test_id) as session:
                        session.screenshots[page.url] = reference
                    logger.debug(f"Captured screenshot for {page.url}")
        finally:
            try:
                await self.screenshot_capture.close()
            except Exception as e:
                logger.warning(f"Failed to close screenshot backend: {e}")

    def _fail(self, message: str) -> None:
        with self.store.mutate(self.test_id) as session:
            session.status = SessionStatus.ERROR
            session.message = message
            if session.end_time is None:
                session.end_time = now_ms()
