"""Aggregate a completed crawl session into an AnalysisReport."""

import logging
from typing import Dict, List, Optional

from site_auditor.issue_detector import RULES
from site_auditor.models import (
    AnalysisReport,
    CrawlSession,
    DetectedIssue,
    Issue,
    IssueCategory,
    PageRecord,
    SessionStatus,
    Severity,
)

logger = logging.getLogger(__name__)

NOT_FOUND_RECOMMENDATION = "Fix broken links or redirect this URL to a valid page."


class ReportBuilder:
    """Builds reports from session snapshots.

    Reports are a pure function of the session: the same completed session
    always yields an identical report.
    """

    def build(self, session: CrawlSession) -> Optional[AnalysisReport]:
        """Build the report for a session.

        Args:
            session: Session snapshot

        Returns:
            AnalysisReport, or None if the session is not complete
        """
        if session.status != SessionStatus.COMPLETE:
            return None

        issues = self._collect_issues(session.pages)

        by_severity: Dict[str, int] = {severity.value: 0 for severity in Severity}
        by_category: Dict[str, int] = {category.value: 0 for category in IssueCategory}
        for issue in issues:
            by_severity[issue.severity.value] += 1
            by_category[issue.category.value] += 1

        total_pages = len(session.pages)
        duration = session.end_time - session.start_time if session.end_time else 0

        logger.debug(
            f"Report for {session.test_id}: {len(issues)} issues across {total_pages} pages"
        )

        return AnalysisReport(
            test_id=session.test_id,
            base_url=session.base_url,
            total_pages=total_pages,
            total_issues=len(issues),
            issues_by_severity=by_severity,
            issues_by_category=by_category,
            issues=issues,
            summary=self.summarize(total_pages, len(issues), by_severity),
            test_duration=duration,
        )

    def _collect_issues(self, pages: List[PageRecord]) -> List[Issue]:
        issues: List[Issue] = []
        for page in pages:
            for finding in page.findings:
                issues.append(self._to_issue(f"issue_{len(issues)}", page, finding))
        return issues

    @staticmethod
    def _to_issue(issue_id: str, page: PageRecord, finding: DetectedIssue) -> Issue:
        rule = RULES.get(finding.code)
        title = rule.title if rule else finding.code.replace("_", " ").title()
        description = finding.message
        recommendation = rule.recommendation if rule else ""

        if finding.code == "http_error":
            title = f"HTTP {page.status_code} Error"
            description = (
                f"Page returned HTTP status code {page.status_code}, "
                f"indicating the page is not accessible."
            )
            if page.status_code == 404:
                recommendation = NOT_FOUND_RECOMMENDATION

        return Issue(
            id=issue_id,
            title=title,
            description=description,
            severity=finding.severity,
            category=finding.category,
            page_url=page.url,
            page_title=page.title,
            recommendation=recommendation,
            affected_elements=rule.affected_elements if rule else None,
        )

    @staticmethod
    def summarize(total_pages: int, total_issues: int, by_severity: Dict[str, int]) -> str:
        """Natural-language summary, led by the most severe tier present."""
        if total_issues == 0:
            return (
                f"Great news! We tested {total_pages} pages and found no significant issues. "
                f"Your website appears to be in excellent shape."
            )

        critical = by_severity.get(Severity.CRITICAL.value, 0)
        high = by_severity.get(Severity.HIGH.value, 0)

        if critical > 0:
            noun = "issue" if critical == 1 else "issues"
            return (
                f"We found {total_issues} issues across {total_pages} pages, including "
                f"{critical} critical {noun} that require immediate attention. Focus on "
                f"resolving critical issues first to ensure your website functions properly."
            )

        if high > 0:
            noun = "issue" if high == 1 else "issues"
            return (
                f"We found {total_issues} issues across {total_pages} pages, including "
                f"{high} high-priority {noun}. Addressing these will significantly improve "
                f"your website's quality and user experience."
            )

        return (
            f"We found {total_issues} minor issues across {total_pages} pages. While none "
            f"are critical, addressing these will help polish your website and improve the "
            f"overall user experience."
        )


def build_report(session: CrawlSession) -> Optional[AnalysisReport]:
    """Build an AnalysisReport for a completed session, or None."""
    return ReportBuilder().build(session)
