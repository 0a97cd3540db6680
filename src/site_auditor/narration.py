"""Narrated action log for a crawl.

The steps recorded here describe what the crawler did in user-facing terms
("navigating", "testing interactive elements"). Nothing is clicked or
filled; the log is derived entirely from the static crawl.
"""

from typing import Callable, Optional

from site_auditor.extractor import FormFeature
from site_auditor.models import VisualAction


class CrawlNarrator:
    """Builds VisualAction entries and hands them to ``emit``."""

    def __init__(self, emit: Callable[[VisualAction], None]):
        self._emit = emit
        self._counter = 0

    @property
    def action_count(self) -> int:
        return self._counter

    def _add(
        self,
        type: str,
        description: str,
        url: str,
        status: str = "success",
        details: Optional[str] = None,
        target_url: Optional[str] = None,
    ) -> VisualAction:
        action = VisualAction(
            id=f"action_{self._counter}",
            type=type,
            description=description,
            url=url,
            status=status,
            details=details,
            target_url=target_url,
        )
        self._counter += 1
        self._emit(action)
        return action

    def started(self, url: str) -> VisualAction:
        return self._add(
            "navigate", f"Starting test on {url}", url,
            details="Initializing comprehensive website test",
        )

    def navigating(self, url: str, index: int, budget: int, link_text: str) -> VisualAction:
        return self._add(
            "navigate", f"Navigating to page {index}/{budget}", url,
            details=link_text, target_url=url,
        )

    def skipped_non_html(self, url: str, content_type: str) -> VisualAction:
        return self._add(
            "check", "Skipped non-HTML content", url,
            status="warning", details=f"Content type: {content_type}",
        )

    def scanning(self, url: str, size_bytes: int) -> VisualAction:
        return self._add(
            "scroll", "Scrolling through page content", url,
            details=f"Analyzing {round(size_bytes / 1024)}KB of content",
        )

    def links_discovered(self, url: str, count: int) -> Optional[VisualAction]:
        if not count:
            return None
        return self._add(
            "click", f"Found {count} clickable links", url,
            details=f"Discovered {count} new pages to test",
        )

    def accessibility_checked(self, url: str, issue_count: int) -> Optional[VisualAction]:
        if not issue_count:
            return None
        return self._add(
            "analyze", "Checking accessibility", url,
            status="warning", details=f"Found {issue_count} accessibility issues",
        )

    def seo_checked(self, url: str, has_issues: bool) -> VisualAction:
        return self._add(
            "check", "Analyzing SEO elements", url,
            status="warning" if has_issues else "success",
            details="Missing meta description or title" if has_issues else "SEO elements present",
        )

    def interactive_elements(self, url: str, buttons: int, forms: int) -> Optional[VisualAction]:
        if not buttons and not forms:
            return None
        return self._add(
            "click", "Testing interactive elements", url,
            details=f"Found {buttons} buttons and {forms} forms",
        )

    def testing_form(self, url: str, index: int, form: FormFeature) -> VisualAction:
        """One step per form; a form without a submit control is a warning."""
        return self._add(
            "fill", f"Testing form {index} with {len(form.inputs)} input fields", url,
            status="success" if form.has_submit else "warning",
            details=(
                f"Input types: {', '.join(form.inputs)}" if form.has_submit
                else "Form has no submit button"
            ),
        )

    def page_failed(self, url: str, message: str) -> VisualAction:
        return self._add(
            "check", "Failed to test page", url, status="error", details=message,
        )

    def report_started(self, base_url: str, page_count: int) -> VisualAction:
        return self._add(
            "analyze", "Generating comprehensive report", base_url,
            details=f"Analyzed {page_count} pages with {self._counter} total checks",
        )
