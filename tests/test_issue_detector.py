"""Tests for the rule-based issue detector."""

import pytest

from site_auditor.issue_detector import (
    RULES,
    IssueDetector,
    detect_issues,
    http_status_issue,
    make_issue,
    non_html_issue,
    split_findings,
    transport_issue,
)
from site_auditor.models import FetchErrorKind, IssueCategory, Severity

from conftest import BASE, CLEAN_HEAD, clean_page


def codes(issues):
    return [issue.code for issue in issues]


def page_with(body: str = "", head: str = CLEAN_HEAD, lang: bool = True) -> str:
    lang_attr = ' lang="en"' if lang else ""
    return (
        f"<!DOCTYPE html><html{lang_attr}><head>{head}"
        f'<link rel="canonical" href="{BASE}/"></head>'
        f"<body><h1>Heading</h1>{body}</body></html>"
    )


class TestIssueDetector:
    """Test cases for IssueDetector."""

    @pytest.fixture
    def detector(self):
        return IssueDetector()

    def test_clean_page_has_no_findings(self, detector):
        """Test a well-formed page produces no findings at all."""
        assert detector.detect(clean_page(), 200, page_url=BASE + "/") == []

    def test_every_code_is_catalogued(self, detector):
        """Test findings always carry the classification of their rule."""
        html = "<html><body><img src='a.png'><a></a><font>old</font><button></button></body></html>"
        for issue in detector.detect(html, 200, page_url=BASE + "/"):
            rule = RULES[issue.code]
            assert issue.category == rule.category
            assert issue.message

    def test_accessibility_scenario(self, detector):
        """Test images without alt, an unlabeled button and no lang."""
        images = "".join(f'<img src="/img{i}.png" width="10" height="10">' for i in range(12))
        html = page_with(images + "<button type='button'></button>", lang=False)

        issues = detector.detect(html, 200, page_url=BASE + "/")
        accessibility = [i for i in issues if i.category == IssueCategory.ACCESSIBILITY]

        assert len({i.message for i in accessibility}) >= 3
        missing_alt = next(i for i in issues if i.code == "images_missing_alt")
        assert missing_alt.count == 12
        assert missing_alt.message == "12 images missing alt text (accessibility issue)"
        assert "buttons_missing_labels" in codes(accessibility)
        assert "missing_lang" in codes(accessibility)

    def test_aria_label_button_is_labelled(self, detector):
        """Test aria-label satisfies the button label check."""
        html = page_with('<button type="button" aria-label="Close">&times;</button>')
        assert "buttons_missing_labels" not in codes(detector.detect(html, 200))

    def test_missing_viewport_and_title(self, detector):
        """Test the SEO and UX basics."""
        issues = detector.detect("<html lang='en'><body><h1>x</h1></body></html>", 200)
        by_code = {issue.code: issue for issue in issues}

        assert by_code["missing_viewport"].severity == Severity.HIGH
        assert by_code["missing_viewport"].category == IssueCategory.UX
        assert by_code["missing_title"].message == "Missing or empty page title (SEO issue)"
        assert by_code["missing_meta_description"].severity == Severity.MEDIUM

    def test_meta_description_length(self, detector):
        """Test short and long descriptions are flagged."""
        short_head = CLEAN_HEAD.replace("Example description " * 7, "Too short")
        issues = detector.detect(page_with(head=short_head), 200)
        message = next(i.message for i in issues if i.code == "meta_description_length")
        assert message.startswith("Meta description too short (9 chars")

        long_head = CLEAN_HEAD.replace("Example description " * 7, "y" * 200)
        issues = detector.detect(page_with(head=long_head), 200)
        assert "Meta description too long" in next(
            i.message for i in issues if i.code == "meta_description_length"
        )

    def test_heading_counts(self, detector):
        """Test missing and duplicate H1 headings."""
        no_h1 = clean_page(body="<p>text</p>")
        assert "missing_h1" in codes(detector.detect(no_h1, 200))

        two_h1 = clean_page(body="<h1>a</h1><h1>b</h1>")
        multiple = next(i for i in detector.detect(two_h1, 200) if i.code == "multiple_h1")
        assert multiple.severity == Severity.LOW
        assert multiple.count == 2

    def test_http_error_status(self, detector):
        """Test error statuses produce one functionality finding."""
        not_found = detector.detect(clean_page(), 404)
        assert codes(not_found) == ["http_error"]
        assert not_found[0].severity == Severity.HIGH
        assert not_found[0].category == IssueCategory.FUNCTIONALITY

        server_error = detector.detect(clean_page(), 503)
        assert server_error[0].severity == Severity.CRITICAL
        assert server_error[0].message == "HTTP 503 error"

    def test_soft_404_title(self, detector):
        """Test a 200 page titled as not found is a soft 404."""
        html = clean_page().replace("<title>Example Home</title>", "<title>404 - Page Not Found</title>")
        assert "soft_404" in codes(detector.detect(html, 200))

    def test_soft_404_body_heading(self, detector):
        """Test the exact <h1>404</h1> literal is a soft 404."""
        html = clean_page(body="<h1>404</h1><p>Sorry</p>")
        assert "soft_404" in codes(detector.detect(html, 200))

    def test_mentioning_404_is_not_soft_404(self, detector):
        """Test prose mentioning 404 does not trigger the heuristic."""
        html = clean_page(body="<h1>Handling 404 errors</h1><p>A 404 means not found.</p>")
        assert "soft_404" not in codes(detector.detect(html, 200))

    def test_soft_404_only_for_status_200(self, detector):
        """Test the soft 404 check does not run for other statuses."""
        html = clean_page(body="<h1>404</h1>")
        assert "soft_404" not in codes(detector.detect(html, 301))

    def test_functionality_checks(self, detector):
        """Test markup-level functionality findings."""
        html = page_with("""
            <a name="anchor">x</a>
            <form><label>Q</label><input name="q"></form>
            <button>Go</button>
            <center>old</center><marquee>older</marquee>
            <img src="javascript:void(0)" alt="x">
            <script src="/js/undefined.js" async></script>
        """)
        found = codes(detector.detect(html, 200))

        for code in ("links_missing_href", "forms_missing_action", "buttons_missing_type",
                     "inputs_missing_type", "deprecated_tags", "broken_image_sources",
                     "invalid_script_source"):
            assert code in found

    def test_js_error_text(self, detector):
        """Test JavaScript error markers in the source."""
        html = page_with("<pre>Uncaught TypeError: x is undefined</pre>")
        issues = detector.detect(html, 200)
        js = [i for i in issues if i.code == "js_error_text"]
        assert len(js) == 1
        assert js[0].severity == Severity.HIGH

    def test_ux_checks(self, detector):
        """Test inline styles, small text and empty links."""
        styled = "".join('<p style="color: red">x</p>' for _ in range(10))
        html = page_with(styled + '<span style="font-size: 9px">tiny</span><a href="/x"></a>')
        by_code = {i.code: i for i in detector.detect(html, 200)}

        assert by_code["excessive_inline_styles"].count == 11
        assert by_code["small_text"].count == 1
        assert by_code["empty_links"].count == 1

    def test_performance_checks(self, detector):
        """Test script, stylesheet, image dimension and head checks."""
        scripts = "".join(f'<script src="/s{i}.js"></script>' for i in range(4))
        sheets = "".join(f'<link rel="stylesheet" href="/c{i}.css">' for i in range(6))
        images = "".join(f'<img src="/i{i}.png" alt="">' for i in range(4))
        html = page_with(images, head=CLEAN_HEAD + sheets + scripts)
        by_code = {i.code: i for i in detector.detect(html, 200)}

        assert by_code["blocking_scripts"].count == 4
        assert by_code["render_blocking_stylesheets"].count == 6
        assert by_code["images_missing_dimensions"].count == 4
        assert by_code["sync_head_scripts"].count == 4
        assert "excessive_external_scripts" not in by_code

    def test_large_dom(self, detector):
        """Test tag count over the threshold."""
        html = page_with("<span>x</span>" * 1600)
        assert "large_dom" in codes(detector.detect(html, 200))

    def test_large_dom_counts_closing_tags(self, detector):
        """Test opening and closing tags both count toward the DOM size."""
        html = page_with("<p></p>" * 1000)
        issue = next(i for i in detector.detect(html, 200) if i.code == "large_dom")

        assert issue.count > 2000
        assert f"({issue.count} tags" in issue.message

    def test_dom_under_tag_threshold(self, detector):
        """Test a page just under the tag threshold is not flagged."""
        html = page_with("<p></p>" * 700)
        assert "large_dom" not in codes(detector.detect(html, 200))

    def test_mixed_content_on_https(self, detector):
        """Test HTTP resources on an HTTPS page."""
        html = page_with('<img src="http://cdn.example.com/a.png" alt="a" width="1" height="1">')
        issue = next(i for i in detector.detect(html, 200, page_url=BASE + "/") if i.code == "mixed_content")
        assert issue.category == IssueCategory.SECURITY
        assert issue.count == 1

    def test_mixed_content_skipped_on_http(self, detector):
        """Test plain HTTP pages are not checked for mixed content."""
        html = page_with('<img src="http://cdn.example.com/a.png" alt="a">')
        issues = detector.detect(html, 200, page_url="http://example.com/")
        assert "mixed_content" not in codes(issues)

    def test_security_checks(self, detector):
        """Test event handlers, password autocomplete and insecure forms."""
        handlers = "".join(f'<div onclick="go({i})">x</div>' for i in range(6))
        form = (
            '<form action="http://example.com/login"><label>P</label>'
            '<input type="password" name="p"></form>'
        )
        by_code = {i.code: i for i in detector.detect(page_with(handlers + form), 200)}

        assert by_code["inline_event_handlers"].count == 6
        assert by_code["password_autocomplete"].severity == Severity.LOW
        assert by_code["insecure_form_action"].severity == Severity.HIGH
        assert by_code["insecure_form_action"].category == IssueCategory.SECURITY

    def test_module_wrapper(self):
        """Test detect_issues matches IssueDetector.detect."""
        html = "<html><body></body></html>"
        assert codes(detect_issues(html, 200)) == codes(IssueDetector().detect(html, 200))


class TestIssueHelpers:
    """Test cases for finding construction helpers."""

    def test_transport_issue_codes(self):
        """Test each failure kind maps to a critical functionality issue."""
        for kind, code in [
            (FetchErrorKind.TIMEOUT, "fetch_timeout"),
            (FetchErrorKind.NETWORK_ERROR, "network_error"),
            (FetchErrorKind.OTHER, "fetch_failed"),
        ]:
            issue = transport_issue(kind, "failed")
            assert issue.code == code
            assert issue.severity == Severity.CRITICAL
            assert issue.category == IssueCategory.FUNCTIONALITY

    def test_non_html_issue(self):
        """Test the non-HTML message names the content type."""
        issue = non_html_issue("application/pdf")
        assert issue.message == "Content type is application/pdf, expected HTML"
        assert issue.severity == Severity.LOW

    def test_split_findings(self):
        """Test findings are routed to errors, visual issues and console errors."""
        findings = [
            http_status_issue(404),
            make_issue("images_missing_alt", "2 images missing alt text (accessibility issue)", 2),
            make_issue("js_error_text", "JavaScript error messages found in page source"),
            make_issue("soft_404", "Page may be a soft 404 (returns 200 but shows error content)"),
        ]

        errors, visual, console = split_findings(findings)

        assert codes(errors) == ["http_error", "soft_404"]
        assert codes(visual) == ["images_missing_alt"]
        assert codes(console) == ["js_error_text"]
