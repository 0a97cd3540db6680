"""Rule-based issue detection over a single page's HTML."""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from site_auditor.constants import (
    BROKEN_SRC_PREFIXES,
    DEPRECATED_TAGS,
    INLINE_EVENT_ATTRIBUTES,
    JS_ERROR_MARKERS,
    MAX_BLOCKING_SCRIPTS,
    MAX_DOM_TAGS,
    MAX_EXTERNAL_SCRIPTS,
    MAX_IMAGES_WITHOUT_DIMENSIONS,
    MAX_INLINE_EVENT_HANDLERS,
    MAX_INLINE_SCRIPT_CHARS,
    MAX_INLINE_STYLES,
    MAX_RENDER_BLOCKING_STYLESHEETS,
    META_DESCRIPTION_MAX_LENGTH,
    META_DESCRIPTION_MIN_LENGTH,
    MIN_READABLE_FONT_PX,
    OPEN_GRAPH_PROPERTIES,
    SOFT_404_BODY_SCAN_CHARS,
)
from site_auditor.extractor import parse_html
from site_auditor.models import DetectedIssue, FetchErrorKind, IssueCategory, Severity

FONT_SIZE_PATTERN = re.compile(r"font-size:\s*([0-9]+)px", re.IGNORECASE)
BODY_PATTERN = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)
LETTER_PATTERN = re.compile(r"[a-zA-Z]")
# Opening and closing tags alike, plus comments and doctypes
TAG_PATTERN = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class IssueRule:
    """Fixed classification and report wording for one detector code."""

    code: str
    category: IssueCategory
    severity: Severity
    title: str
    recommendation: str
    affected_elements: Optional[str] = None


_F = IssueCategory.FUNCTIONALITY
_A = IssueCategory.ACCESSIBILITY
_P = IssueCategory.PERFORMANCE
_S = IssueCategory.SEO
_U = IssueCategory.UX
_X = IssueCategory.SECURITY

RULES: Dict[str, IssueRule] = {rule.code: rule for rule in (
    # Transport and content failures
    IssueRule("fetch_timeout", _F, Severity.CRITICAL, "Page Failed to Load",
              "Check server response times and ensure the page responds within 10 seconds."),
    IssueRule("network_error", _F, Severity.CRITICAL, "Page Failed to Load",
              "Check server configuration and ensure the page is accessible."),
    IssueRule("fetch_failed", _F, Severity.CRITICAL, "Page Failed to Load",
              "Check server configuration and ensure the page is accessible."),
    IssueRule("non_html_content", _F, Severity.LOW, "Non-HTML Content Linked",
              "Link to HTML pages from navigation, or serve the page with a text/html content type."),
    IssueRule("http_error", _F, Severity.HIGH, "HTTP Error",
              "Investigate server errors and ensure the page loads correctly."),
    IssueRule("soft_404", _F, Severity.HIGH, "Soft 404 Detected",
              "Return a real 404 status for missing pages, or fix the content this URL should serve."),
    # Functionality
    IssueRule("links_missing_href", _F, Severity.LOW, "Links Missing href",
              "Give every link an href, or use a button for script-driven actions.", "Links"),
    IssueRule("forms_missing_action", _F, Severity.MEDIUM, "Forms Missing Action",
              "Set an explicit action attribute on every form.", "Forms"),
    IssueRule("buttons_missing_type", _F, Severity.LOW, "Buttons Missing Type",
              'Declare type="button", "submit" or "reset" on every button to avoid accidental submits.',
              "Buttons"),
    IssueRule("inputs_missing_type", _F, Severity.LOW, "Inputs Missing Type",
              "Declare the type attribute on every input field.", "Inputs"),
    IssueRule("deprecated_tags", _F, Severity.MEDIUM, "Deprecated HTML Tags",
              "Replace deprecated presentational tags with semantic HTML and CSS."),
    IssueRule("broken_image_sources", _F, Severity.MEDIUM, "Broken Image Sources",
              "Fix image source URLs to point to valid image files.", "Images"),
    IssueRule("js_error_text", _F, Severity.HIGH, "JavaScript Errors Detected",
              "Review browser console and fix JavaScript errors to ensure proper functionality."),
    IssueRule("invalid_script_source", _F, Severity.HIGH, "Invalid Script Source",
              "Fix script tag sources to point to valid JavaScript files.", "Scripts"),
    # Accessibility
    IssueRule("images_missing_alt", _A, Severity.MEDIUM, "Missing Image Alt Text",
              "Add descriptive alt text to all images for screen reader users and SEO benefits.",
              "Images"),
    IssueRule("inputs_missing_labels", _A, Severity.MEDIUM, "Form Inputs Missing Labels",
              "Associate a <label> with every form input.", "Inputs"),
    IssueRule("buttons_missing_labels", _A, Severity.MEDIUM, "Buttons Missing Accessible Labels",
              "Give icon-only buttons visible text or an aria-label.", "Buttons"),
    IssueRule("missing_h1", _A, Severity.MEDIUM, "Missing H1 Heading",
              "Add a single H1 heading describing the page content."),
    IssueRule("multiple_h1", _A, Severity.LOW, "Multiple H1 Headings",
              "Keep one H1 per page and use H2-H6 for sub-sections."),
    IssueRule("missing_lang", _A, Severity.MEDIUM, "Missing Language Attribute",
              'Declare the page language, e.g. <html lang="en">.'),
    # SEO
    IssueRule("missing_title", _S, Severity.HIGH, "Missing Page Title",
              "Add a descriptive, unique title tag to every page (50-60 characters recommended)."),
    IssueRule("missing_meta_description", _S, Severity.MEDIUM, "Missing Meta Description",
              "Add a meta description summarising the page in 120-160 characters."),
    IssueRule("meta_description_length", _S, Severity.LOW, "Meta Description Length",
              "Keep the meta description between 120 and 160 characters."),
    IssueRule("missing_open_graph", _S, Severity.LOW, "Missing Open Graph Tags",
              "Add og:title, og:description and og:image meta tags for social sharing."),
    IssueRule("missing_canonical", _S, Severity.LOW, "Missing Canonical URL",
              'Add <link rel="canonical"> pointing at the preferred URL of the page.'),
    # UX
    IssueRule("missing_viewport", _U, Severity.HIGH, "Missing Viewport Meta Tag",
              'Add <meta name="viewport" content="width=device-width, initial-scale=1"> '
              "to the <head> section."),
    IssueRule("excessive_inline_styles", _U, Severity.LOW, "Excessive Inline Styles",
              "Move inline styles to CSS files for better maintainability and caching."),
    IssueRule("small_text", _U, Severity.MEDIUM, "Very Small Text",
              "Use font sizes of at least 12px for body copy."),
    IssueRule("empty_links", _U, Severity.MEDIUM, "Empty Links Found",
              "Remove empty links or add meaningful content and labels.", "Links"),
    # Performance
    IssueRule("large_inline_scripts", _P, Severity.MEDIUM, "Large Inline Scripts",
              "Move large scripts to external, cacheable files."),
    IssueRule("excessive_external_scripts", _P, Severity.MEDIUM, "Too Many External Scripts",
              "Bundle scripts to reduce the number of requests."),
    IssueRule("blocking_scripts", _P, Severity.MEDIUM, "Scripts Without async/defer",
              "Load non-critical scripts with async or defer."),
    IssueRule("render_blocking_stylesheets", _P, Severity.MEDIUM, "Render-Blocking Stylesheets",
              "Combine stylesheets and inline critical CSS."),
    IssueRule("images_missing_dimensions", _P, Severity.LOW, "Images Without Dimensions",
              "Set width and height on images to prevent layout shift.", "Images"),
    IssueRule("large_dom", _P, Severity.MEDIUM, "Large DOM Size",
              "Reduce the number of elements on the page."),
    IssueRule("sync_head_scripts", _P, Severity.MEDIUM, "Synchronous Scripts in Head",
              "Add async or defer to scripts in <head>, or move them to the end of <body>."),
    # Security
    IssueRule("mixed_content", _X, Severity.HIGH, "Mixed Content",
              "Load every resource over HTTPS."),
    IssueRule("inline_event_handlers", _X, Severity.MEDIUM, "Inline Event Handlers",
              "Attach event listeners from scripts instead of inline on* attributes."),
    IssueRule("password_autocomplete", _X, Severity.LOW, "Password Fields Without Autocomplete",
              'Set autocomplete="current-password" or "new-password" on password fields.', "Inputs"),
    IssueRule("insecure_form_action", _X, Severity.HIGH, "Form Submits Over HTTP",
              "Submit forms to HTTPS endpoints only.", "Forms"),
)}

# Findings stored as page-level errors rather than visual issues
CONTENT_ERROR_CODES = frozenset({"http_error", "soft_404"})
# Findings stored as console errors
CONSOLE_ERROR_CODES = frozenset({"js_error_text", "invalid_script_source"})

TRANSPORT_CODES = {
    FetchErrorKind.TIMEOUT: "fetch_timeout",
    FetchErrorKind.NETWORK_ERROR: "network_error",
    FetchErrorKind.OTHER: "fetch_failed",
}


def make_issue(code: str, message: str, count: int = 1,
               severity: Optional[Severity] = None) -> DetectedIssue:
    """Build a DetectedIssue from the rule catalog."""
    rule = RULES[code]
    return DetectedIssue(
        code=code,
        category=rule.category,
        severity=severity or rule.severity,
        message=message,
        count=count,
    )


def transport_issue(kind: FetchErrorKind, message: str) -> DetectedIssue:
    return make_issue(TRANSPORT_CODES[kind], message)


def non_html_issue(content_type: str) -> DetectedIssue:
    return make_issue("non_html_content", f"Content type is {content_type}, expected HTML")


def http_status_issue(status_code: int) -> DetectedIssue:
    severity = Severity.CRITICAL if status_code >= 500 else Severity.HIGH
    return make_issue("http_error", f"HTTP {status_code} error", severity=severity)


def split_findings(
    findings: List[DetectedIssue],
) -> Tuple[List[DetectedIssue], List[DetectedIssue], List[DetectedIssue]]:
    """Split detector output into (errors, visual_issues, console_errors)."""
    errors, visual, console = [], [], []
    for finding in findings:
        if finding.code in CONTENT_ERROR_CODES:
            errors.append(finding)
        elif finding.code in CONSOLE_ERROR_CODES:
            console.append(finding)
        else:
            visual.append(finding)
    return errors, visual, console


def _attr(tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _is_async_or_deferred(script) -> bool:
    return script.has_attr("async") or script.has_attr("defer")


class IssueDetector:
    """Stateless rule set turning one page's HTML into findings.

    Every check runs on every page; each yields at most one finding.
    Thresholds are fixed constants.
    """

    def detect(
        self,
        html: str,
        status_code: int,
        page_url: Optional[str] = None,
        soup: Optional[BeautifulSoup] = None,
    ) -> List[DetectedIssue]:
        """Run all checks against a page.

        Args:
            html: Raw HTML source
            status_code: HTTP status the page was served with
            page_url: Page URL; when it is plain HTTP the mixed-content
                check is skipped
            soup: Already parsed document, to avoid parsing twice

        Returns:
            List of DetectedIssue in check order
        """
        html = html or ""
        if soup is None:
            soup = parse_html(html)

        issues: List[DetectedIssue] = []
        self._check_status(html, soup, status_code, issues)
        self._check_functionality(html, soup, issues)
        self._check_accessibility(soup, issues)
        self._check_seo(soup, issues)
        self._check_ux(soup, issues)
        self._check_performance(html, soup, issues)
        self._check_security(soup, page_url, issues)
        return issues

    def _check_status(
        self, html: str, soup: BeautifulSoup, status_code: int, issues: List[DetectedIssue]
    ) -> None:
        if status_code >= 400:
            issues.append(http_status_issue(status_code))

        if status_code == 200 and self._looks_like_soft_404(html, soup):
            issues.append(make_issue(
                "soft_404", "Page may be a soft 404 (returns 200 but shows error content)"
            ))

    @staticmethod
    def _looks_like_soft_404(html: str, soup: BeautifulSoup) -> bool:
        """Exact-match heuristics only; pages merely mentioning 404 pass."""
        title_tag = soup.find("title")
        title = title_tag.get_text(strip=True).lower() if title_tag else ""
        if ("404" in title and "not found" in title) or title in ("404", "not found"):
            return True

        body_match = BODY_PATTERN.search(html)
        body = body_match.group(1)[:SOFT_404_BODY_SCAN_CHARS] if body_match else ""
        return "<h1>404</h1>" in body or "<h1>Not Found</h1>" in body

    def _check_functionality(
        self, html: str, soup: BeautifulSoup, issues: List[DetectedIssue]
    ) -> None:
        anchors = soup.find_all("a")
        missing_href = sum(1 for a in anchors if not a.has_attr("href"))
        if missing_href:
            issues.append(make_issue(
                "links_missing_href",
                f"{missing_href} links missing href attribute (functionality issue)",
                missing_href,
            ))

        forms = soup.find_all("form")
        missing_action = sum(1 for form in forms if not form.has_attr("action"))
        if missing_action:
            issues.append(make_issue(
                "forms_missing_action",
                f"{missing_action} forms missing action attribute (functionality issue)",
                missing_action,
            ))

        missing_button_type = sum(1 for b in soup.find_all("button") if not b.has_attr("type"))
        if missing_button_type:
            issues.append(make_issue(
                "buttons_missing_type",
                f"{missing_button_type} buttons missing type attribute (functionality issue)",
                missing_button_type,
            ))

        missing_input_type = sum(1 for i in soup.find_all("input") if not i.has_attr("type"))
        if missing_input_type:
            issues.append(make_issue(
                "inputs_missing_type",
                f"{missing_input_type} inputs missing type attribute (functionality issue)",
                missing_input_type,
            ))

        deprecated = len(soup.find_all(list(DEPRECATED_TAGS)))
        if deprecated:
            issues.append(make_issue(
                "deprecated_tags",
                f"{deprecated} deprecated HTML tags found (functionality/compatibility issue)",
                deprecated,
            ))

        broken_sources = sum(
            1 for tag in soup.find_all(src=True)
            if _attr(tag, "src").lower().startswith(BROKEN_SRC_PREFIXES)
        )
        if broken_sources:
            issues.append(make_issue(
                "broken_image_sources",
                "Potentially broken image sources detected (functionality issue)",
                broken_sources,
            ))

        if any(marker in html for marker in JS_ERROR_MARKERS):
            issues.append(make_issue(
                "js_error_text", "JavaScript error messages found in page source"
            ))

        for script in soup.find_all("script", src=True):
            src = _attr(script, "src")
            if "undefined" in src or "null" in src:
                issues.append(make_issue(
                    "invalid_script_source", "Script tag with invalid source detected"
                ))
                break

    def _check_accessibility(self, soup: BeautifulSoup, issues: List[DetectedIssue]) -> None:
        images = soup.find_all("img")
        without_alt = sum(1 for img in images if not img.has_attr("alt"))
        if without_alt:
            issues.append(make_issue(
                "images_missing_alt",
                f"{without_alt} images missing alt text (accessibility issue)",
                without_alt,
            ))

        input_count = len(soup.find_all("input"))
        label_count = len(soup.find_all("label"))
        if input_count > label_count:
            missing = input_count - label_count
            issues.append(make_issue(
                "inputs_missing_labels",
                f"{missing} form inputs may be missing labels (accessibility issue)",
                missing,
            ))

        unlabeled_buttons = sum(
            1 for button in soup.find_all("button")
            if not button.has_attr("aria-label")
            and not LETTER_PATTERN.search(button.get_text())
        )
        if unlabeled_buttons:
            issues.append(make_issue(
                "buttons_missing_labels",
                f"{unlabeled_buttons} buttons may be missing accessible labels",
                unlabeled_buttons,
            ))

        h1_count = len(soup.find_all("h1"))
        if h1_count == 0:
            issues.append(make_issue(
                "missing_h1", "Missing H1 heading (accessibility and SEO issue)"
            ))
        elif h1_count > 1:
            issues.append(make_issue(
                "multiple_h1",
                f"Multiple H1 headings found ({h1_count}) - should only have one per page",
                h1_count,
            ))

        html_tag = soup.find("html")
        if html_tag is None or not html_tag.has_attr("lang"):
            issues.append(make_issue(
                "missing_lang", "Missing language attribute on HTML tag (accessibility issue)"
            ))

    def _check_seo(self, soup: BeautifulSoup, issues: List[DetectedIssue]) -> None:
        title_tag = soup.find("title")
        if title_tag is None or not title_tag.get_text(strip=True):
            issues.append(make_issue("missing_title", "Missing or empty page title (SEO issue)"))

        description = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
        if description is None:
            issues.append(make_issue(
                "missing_meta_description", "Missing meta description (SEO issue)"
            ))
        else:
            content = description.get("content") or ""
            length = len(content)
            if content and length < META_DESCRIPTION_MIN_LENGTH:
                issues.append(make_issue(
                    "meta_description_length",
                    f"Meta description too short ({length} chars, recommended "
                    f"{META_DESCRIPTION_MIN_LENGTH}-{META_DESCRIPTION_MAX_LENGTH})",
                ))
            elif length > META_DESCRIPTION_MAX_LENGTH:
                issues.append(make_issue(
                    "meta_description_length",
                    f"Meta description too long ({length} chars, recommended "
                    f"{META_DESCRIPTION_MIN_LENGTH}-{META_DESCRIPTION_MAX_LENGTH})",
                ))

        og_present = {
            _attr(meta, "property") for meta in soup.find_all("meta", property=True)
        }
        if not all(prop in og_present for prop in OPEN_GRAPH_PROPERTIES):
            issues.append(make_issue(
                "missing_open_graph",
                "Missing Open Graph tags for social media sharing (SEO issue)",
            ))

        if soup.find("link", rel="canonical") is None:
            issues.append(make_issue("missing_canonical", "Missing canonical URL (SEO issue)"))

    def _check_ux(self, soup: BeautifulSoup, issues: List[DetectedIssue]) -> None:
        if soup.find("meta", attrs={"name": re.compile(r"^viewport$", re.I)}) is None:
            issues.append(make_issue(
                "missing_viewport", "Missing viewport meta tag (mobile responsiveness issue)"
            ))

        styles = [_attr(tag, "style") for tag in soup.find_all(style=True)]
        styles = [style for style in styles if style]
        if len(styles) > MAX_INLINE_STYLES:
            issues.append(make_issue(
                "excessive_inline_styles",
                f"Excessive inline styles detected ({len(styles)} instances - "
                f"UX/maintainability issue)",
                len(styles),
            ))

        small_text = sum(
            1 for style in styles
            for size in FONT_SIZE_PATTERN.findall(style)
            if int(size) < MIN_READABLE_FONT_PX
        )
        if small_text:
            issues.append(make_issue(
                "small_text",
                f"{small_text} instances of very small text (< {MIN_READABLE_FONT_PX}px) "
                f"detected (UX issue)",
                small_text,
            ))

        empty_links = sum(
            1 for a in soup.find_all("a")
            if a.find(True) is None and not a.get_text(strip=True)
        )
        if empty_links:
            issues.append(make_issue(
                "empty_links", f"{empty_links} empty links found (UX issue)", empty_links
            ))

    def _check_performance(
        self, html: str, soup: BeautifulSoup, issues: List[DetectedIssue]
    ) -> None:
        scripts = soup.find_all("script")
        large_inline = sum(
            1 for script in scripts
            if not script.has_attr("src") and len(script.string or "") > MAX_INLINE_SCRIPT_CHARS
        )
        if large_inline:
            issues.append(make_issue(
                "large_inline_scripts",
                f"{large_inline} large inline scripts detected (performance issue)",
                large_inline,
            ))

        external = [script for script in scripts if script.has_attr("src")]
        if len(external) > MAX_EXTERNAL_SCRIPTS:
            issues.append(make_issue(
                "excessive_external_scripts",
                f"{len(external)} external scripts loaded (performance issue - consider bundling)",
                len(external),
            ))

        blocking = sum(1 for script in external if not _is_async_or_deferred(script))
        if blocking > MAX_BLOCKING_SCRIPTS:
            issues.append(make_issue(
                "blocking_scripts",
                f"{blocking} scripts without async/defer (performance issue)",
                blocking,
            ))

        stylesheets = sum(
            1 for link in soup.find_all("link", rel="stylesheet")
            if _attr(link, "media").lower() != "print"
        )
        if stylesheets > MAX_RENDER_BLOCKING_STYLESHEETS:
            issues.append(make_issue(
                "render_blocking_stylesheets",
                f"{stylesheets} render-blocking stylesheets (performance issue)",
                stylesheets,
            ))

        without_dimensions = sum(
            1 for img in soup.find_all("img")
            if not img.has_attr("width") and not img.has_attr("height")
        )
        if without_dimensions > MAX_IMAGES_WITHOUT_DIMENSIONS:
            issues.append(make_issue(
                "images_missing_dimensions",
                f"{without_dimensions} images without dimensions (performance - layout shift issue)",
                without_dimensions,
            ))

        tag_count = len(TAG_PATTERN.findall(html))
        if tag_count > MAX_DOM_TAGS:
            issues.append(make_issue(
                "large_dom",
                f"Large DOM size detected ({tag_count} tags - performance issue)",
                tag_count,
            ))

        head = soup.find("head")
        if head is not None:
            sync_in_head = sum(
                1 for script in head.find_all("script", src=True)
                if not _is_async_or_deferred(script)
            )
            if sync_in_head:
                issues.append(make_issue(
                    "sync_head_scripts",
                    f"{sync_in_head} synchronous scripts in <head> (performance - blocking issue)",
                    sync_in_head,
                ))

    def _check_security(
        self, soup: BeautifulSoup, page_url: Optional[str], issues: List[DetectedIssue]
    ) -> None:
        if page_url is None or page_url.lower().startswith("https://"):
            http_resources = sum(
                1 for tag in soup.find_all(src=True)
                if _attr(tag, "src").lower().startswith("http://")
            )
            if not http_resources:
                http_resources = sum(
                    1 for tag in soup.find_all(href=True)
                    if _attr(tag, "href").lower().startswith("http://")
                )
            if http_resources:
                issues.append(make_issue(
                    "mixed_content",
                    f"{http_resources} HTTP resources on HTTPS page (security - mixed content warning)",
                    http_resources,
                ))

        handlers = sum(
            1 for tag in soup.find_all(True)
            for attribute in INLINE_EVENT_ATTRIBUTES
            if tag.has_attr(attribute)
        )
        if handlers > MAX_INLINE_EVENT_HANDLERS:
            issues.append(make_issue(
                "inline_event_handlers",
                f"{handlers} inline event handlers detected (security - potential XSS risk)",
                handlers,
            ))

        passwords = sum(
            1 for field in soup.find_all("input")
            if _attr(field, "type").lower() == "password" and not field.has_attr("autocomplete")
        )
        if passwords:
            issues.append(make_issue(
                "password_autocomplete",
                f"{passwords} password fields without autocomplete attribute (security/UX issue)",
                passwords,
            ))

        insecure_forms = sum(
            1 for form in soup.find_all("form")
            if _attr(form, "action").lower().startswith("http://")
        )
        if insecure_forms:
            issues.append(make_issue(
                "insecure_form_action",
                f"{insecure_forms} forms submitting to HTTP (security issue - use HTTPS)",
                insecure_forms,
            ))


_default_detector = IssueDetector()


def detect_issues(
    html: str,
    status_code: int,
    page_url: Optional[str] = None,
    soup: Optional[BeautifulSoup] = None,
) -> List[DetectedIssue]:
    """Module-level convenience wrapper around IssueDetector.detect."""
    return _default_detector.detect(html, status_code, page_url=page_url, soup=soup)
