"""Data models for crawl sessions and audit reports."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from site_auditor.constants import INITIAL_SOURCE, SUCCESS_STATUS_MAX, SUCCESS_STATUS_MIN


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class SessionStatus(str, Enum):
    """Lifecycle of a crawl session."""

    CRAWLING = "crawling"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETE, SessionStatus.ERROR)


class DiscoveryMethod(str, Enum):
    """How a URL entered the frontier."""

    INITIAL = "initial"
    HTML_LINK = "html_link"
    META_TAG = "meta_tag"
    REDIRECT = "redirect"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueCategory(str, Enum):
    FUNCTIONALITY = "functionality"
    ACCESSIBILITY = "accessibility"
    PERFORMANCE = "performance"
    SEO = "seo"
    UX = "ux"
    SECURITY = "security"


class FetchErrorKind(str, Enum):
    """Classification of transport-level failures."""

    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    OTHER = "other"


@dataclass
class DiscoveryEvent:
    """Provenance of a URL: which page linked to it and how."""

    url: str
    discovered_from: str
    link_text: str
    discovery_method: DiscoveryMethod
    depth: int
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "discoveredFrom": self.discovered_from,
            "linkText": self.link_text,
            "discoveryMethod": self.discovery_method.value,
            "depth": self.depth,
            "timestamp": self.timestamp,
        }


@dataclass
class DetectedIssue:
    """A single finding emitted by the issue detector.

    ``message`` is the human-readable description shown to users; ``code``
    identifies the rule that produced it.
    """

    code: str
    category: IssueCategory
    severity: Severity
    message: str
    count: int = 1

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "count": self.count,
        }


@dataclass
class PageRecord:
    """Result of one dequeued URL. Created once, never updated."""

    url: str
    title: str
    status_code: int
    links: List[str] = field(default_factory=list)
    errors: List[DetectedIssue] = field(default_factory=list)
    timestamp: int = field(default_factory=now_ms)
    visual_issues: List[DetectedIssue] = field(default_factory=list)
    console_errors: List[DetectedIssue] = field(default_factory=list)
    discovered_from: str = INITIAL_SOURCE
    link_text: str = ""
    discovery_method: DiscoveryMethod = DiscoveryMethod.INITIAL
    depth: int = 0
    final_url: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return SUCCESS_STATUS_MIN <= self.status_code <= SUCCESS_STATUS_MAX

    @property
    def findings(self) -> List[DetectedIssue]:
        """All findings in report order: errors, visual issues, console errors."""
        return [*self.errors, *self.visual_issues, *self.console_errors]

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "title": self.title,
            "statusCode": self.status_code,
            "links": list(self.links),
            "errors": [e.message for e in self.errors],
            "timestamp": self.timestamp,
            "visualIssues": [i.message for i in self.visual_issues],
            "consoleErrors": [c.message for c in self.console_errors],
            "discoveredFrom": self.discovered_from,
            "linkText": self.link_text,
            "discoveryMethod": self.discovery_method.value,
            "depth": self.depth,
            "finalUrl": self.final_url,
        }


@dataclass
class VisualAction:
    """One narrated step of a test run (navigation, scroll, check...)."""

    id: str
    type: str
    description: str
    url: str
    status: str
    timestamp: int = field(default_factory=now_ms)
    details: Optional[str] = None
    target_url: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "url": self.url,
            "timestamp": self.timestamp,
            "status": self.status,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.target_url is not None:
            data["targetUrl"] = self.target_url
        return data


@dataclass
class CrawlSession:
    """State of one end-to-end crawl-and-analyze run."""

    test_id: str
    base_url: str
    status: SessionStatus = SessionStatus.CRAWLING
    progress: float = 0.0
    pages_found: int = 0
    current_page: Optional[str] = None
    message: Optional[str] = None
    pages: List[PageRecord] = field(default_factory=list)
    crawl_path: List[DiscoveryEvent] = field(default_factory=list)
    start_time: int = field(default_factory=now_ms)
    end_time: Optional[int] = None
    frontier_size: int = 0
    screenshots: Dict[str, str] = field(default_factory=dict)
    actions: List[VisualAction] = field(default_factory=list)

    def status_dict(self) -> dict:
        """The subset of fields a polling client sees."""
        return {
            "status": self.status.value,
            "progress": self.progress,
            "pagesFound": self.pages_found,
            "currentPage": self.current_page,
            "message": self.message,
        }

    def to_dict(self) -> dict:
        return {
            "testId": self.test_id,
            "baseUrl": self.base_url,
            **self.status_dict(),
            "pages": [p.to_dict() for p in self.pages],
            "crawlPath": [d.to_dict() for d in self.crawl_path],
            "startTime": self.start_time,
            "endTime": self.end_time,
            "frontierSize": self.frontier_size,
            "screenshots": dict(self.screenshots),
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class Issue:
    """A report-level issue materialized from a page finding."""

    id: str
    title: str
    description: str
    severity: Severity
    category: IssueCategory
    page_url: str
    page_title: str
    recommendation: str
    affected_elements: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "category": self.category.value,
            "pageUrl": self.page_url,
            "pageTitle": self.page_title,
            "recommendation": self.recommendation,
        }
        if self.affected_elements is not None:
            data["affectedElements"] = self.affected_elements
        return data


@dataclass
class AnalysisReport:
    """Aggregated view of a completed session."""

    test_id: str
    base_url: str
    total_pages: int
    total_issues: int
    issues_by_severity: Dict[str, int]
    issues_by_category: Dict[str, int]
    issues: List[Issue]
    summary: str
    test_duration: int

    def to_dict(self) -> dict:
        return {
            "testId": self.test_id,
            "baseUrl": self.base_url,
            "totalPages": self.total_pages,
            "totalIssues": self.total_issues,
            "issuesBySeverity": dict(self.issues_by_severity),
            "issuesByCategory": dict(self.issues_by_category),
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary,
            "testDuration": self.test_duration,
        }
