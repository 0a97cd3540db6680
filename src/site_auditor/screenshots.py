"""Screenshot capture collaborators.

The crawler only needs an opaque image reference per page. The default
implementation returns a placeholder URL; ``PlaywrightScreenshotCapture``
renders real screenshots with headless Chromium.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from site_auditor.models import PageRecord

logger = logging.getLogger(__name__)


class ScreenshotCapture:
    """Interface: turn a page record into an image reference."""

    async def capture(self, page: PageRecord) -> Optional[str]:
        raise NotImplementedError

    async def close(self) -> None:
        """Release any resources held by the backend."""


class PlaceholderScreenshotCapture(ScreenshotCapture):
    """Returns a placeholder image URL labelled with the page title."""

    def __init__(self, width: int = 1200, height: int = 600):
        self.width = width
        self.height = height

    async def capture(self, page: PageRecord) -> Optional[str]:
        return (
            f"/placeholder.svg?height={self.height}&width={self.width}"
            f"&query=Screenshot of {quote(page.title, safe='')}"
        )


class PlaywrightScreenshotCapture(ScreenshotCapture):
    """Captures full-page PNGs with Playwright.

    The browser is launched on first use and reused until ``close()``.
    Returned references are file paths inside ``output_dir``.
    """

    def __init__(
        self,
        output_dir: str = "screenshots",
        browser_type: str = "chromium",
        timeout_ms: int = 30000,
        viewport: Optional[dict] = None,
    ):
        self.output_dir = Path(output_dir)
        self.browser_type = browser_type
        self.timeout_ms = timeout_ms
        self.viewport = viewport or {"width": 1200, "height": 600}
        self._playwright = None
        self._browser = None

    async def _ensure_browser(self):
        if self._browser is not None:
            return self._browser

        from playwright.async_api import async_playwright

        logger.info(f"Launching {self.browser_type} for screenshots")
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_type)
        self._browser = await launcher.launch(headless=True)
        return self._browser

    async def capture(self, page: PageRecord) -> Optional[str]:
        browser = await self._ensure_browser()
        self.output_dir.mkdir(parents=True, exist_ok=True)

        filename = hashlib.md5(page.url.encode()).hexdigest()[:12] + ".png"
        path = self.output_dir / filename

        context = await browser.new_context(viewport=self.viewport)
        try:
            browser_page = await context.new_page()
            await browser_page.goto(page.url, wait_until="load", timeout=self.timeout_ms)
            await browser_page.screenshot(path=str(path), full_page=True)
        finally:
            await context.close()

        return str(path)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


def get_screenshot_capture(backend: str, output_dir: str = "screenshots") -> ScreenshotCapture:
    """Build the screenshot backend named in configuration."""
    if backend == "playwright":
        return PlaywrightScreenshotCapture(output_dir=output_dir)
    if backend != "placeholder":
        logger.warning(f"Unknown screenshot backend '{backend}', using placeholder")
    return PlaceholderScreenshotCapture()
