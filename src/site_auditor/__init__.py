"""Website crawler and static page auditor."""

__version__ = "0.1.0"

from site_auditor.fetcher import FetchClient, FetchResult
from site_auditor.extractor import ExtractedFeatures, extract_features
from site_auditor.issue_detector import IssueDetector, detect_issues
from site_auditor.site_crawler import SiteCrawler
from site_auditor.session_store import SessionStore, default_store
from site_auditor.report_builder import ReportBuilder, build_report
from site_auditor.screenshots import (
    ScreenshotCapture,
    PlaceholderScreenshotCapture,
    PlaywrightScreenshotCapture,
)
from site_auditor.service import (
    AuditService,
    SiteAuditorError,
    InvalidURLError,
)
from site_auditor.models import (
    SessionStatus,
    DiscoveryMethod,
    Severity,
    IssueCategory,
    FetchErrorKind,
    DiscoveryEvent,
    DetectedIssue,
    PageRecord,
    VisualAction,
    CrawlSession,
    Issue,
    AnalysisReport,
)
from site_auditor.config import Config, settings

__all__ = [
    # Core
    "FetchClient",
    "FetchResult",
    "ExtractedFeatures",
    "extract_features",
    "IssueDetector",
    "detect_issues",
    "SiteCrawler",
    "SessionStore",
    "default_store",
    "ReportBuilder",
    "build_report",
    "ScreenshotCapture",
    "PlaceholderScreenshotCapture",
    "PlaywrightScreenshotCapture",
    "AuditService",
    "SiteAuditorError",
    "InvalidURLError",
    # Models
    "SessionStatus",
    "DiscoveryMethod",
    "Severity",
    "IssueCategory",
    "FetchErrorKind",
    "DiscoveryEvent",
    "DetectedIssue",
    "PageRecord",
    "VisualAction",
    "CrawlSession",
    "Issue",
    "AnalysisReport",
    # Config
    "Config",
    "settings",
]
