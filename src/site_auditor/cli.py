"""Command-line interface for the site auditor."""

import asyncio
import json
import sys
from dataclasses import replace
from typing import Optional

from site_auditor.config import settings
from site_auditor.logging_config import setup_logging
from site_auditor.models import AnalysisReport, CrawlSession, SessionStatus
from site_auditor.service import AuditService, InvalidURLError

POLL_INTERVAL_SECONDS = 0.5

SEVERITY_ICONS = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🔵",
}


async def _run_test(service: AuditService, url: str, quiet: bool = False) -> CrawlSession:
    """Start a test and poll its status until it finishes."""
    test_id = service.start_test(url)
    if not quiet:
        print(f"Started test {test_id}")

    last_line = None
    while True:
        status = service.get_status(test_id)
        if status and SessionStatus(status["status"]).is_terminal:
            break
        if status and not quiet:
            line = (
                f"  [{status['status']}] {status['progress']:.0f}% - "
                f"{status['pagesFound']} pages - {status['currentPage'] or ''}"
            )
            if line != last_line:
                print(line)
                last_line = line
        await asyncio.sleep(POLL_INTERVAL_SECONDS)

    return await service.wait(test_id)


def print_report(report: AnalysisReport) -> None:
    """Print a report in a human-readable format."""
    print(f"\n{'=' * 60}")
    print(f"Site Audit for: {report.base_url}")
    print(f"{'=' * 60}")
    print(f"\n📄 Pages tested: {report.total_pages}")
    print(f"⏱️  Duration: {report.test_duration / 1000:.1f}s")
    print(f"\n{report.summary}")

    print("\nIssues by severity:")
    for severity, count in report.issues_by_severity.items():
        print(f"  {SEVERITY_ICONS.get(severity, '•')} {severity}: {count}")

    print("\nIssues by category:")
    for category, count in report.issues_by_category.items():
        print(f"  • {category}: {count}")

    if report.issues:
        print(f"\n⚠️  Issues ({report.total_issues}):")
        for issue in report.issues:
            icon = SEVERITY_ICONS.get(issue.severity.value, "•")
            print(f"  {icon} [{issue.category.value}] {issue.title} - {issue.page_url}")
            print(f"      {issue.description}")
            print(f"      💡 {issue.recommendation}")

    print(f"\n{'=' * 60}\n")


def _write_output(content: str, output_file: Optional[str]) -> None:
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(content)
        print(f"Results written to {output_file}")
    else:
        print(content)


def main(argv=None):
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Site Auditor - Crawl a website and report functional, accessibility, "
                    "SEO, UX, performance and security issues"
    )
    parser.add_argument("url", help="URL to start crawling from")
    parser.add_argument(
        "--max-pages",
        type=int,
        default=settings.max_pages,
        help=f"Maximum number of pages to crawl (default: {settings.max_pages})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=settings.request_delay,
        help=f"Seconds to wait between requests (default: {settings.request_delay})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.request_timeout,
        help=f"Per-request timeout in seconds (default: {settings.request_timeout})",
    )
    parser.add_argument(
        "--screenshots",
        choices=["placeholder", "playwright"],
        default=settings.screenshot_backend,
        help="Screenshot backend (playwright requires: playwright install chromium)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the report (or the failed session) as JSON",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Write output to file instead of stdout",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level.upper(),
        help="Set logging verbosity",
    )
    parser.add_argument(
        "--log-file",
        default=settings.log_file,
        help="Write logs to file in addition to console",
    )

    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file)

    config = replace(
        settings,
        max_pages=args.max_pages,
        request_delay=args.delay,
        request_timeout=args.timeout,
        screenshot_backend=args.screenshots,
    )
    service = AuditService(config=config)

    async def run() -> CrawlSession:
        return await _run_test(service, args.url, quiet=args.json)

    try:
        session = asyncio.run(run())
    except InvalidURLError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n⚠️  Test interrupted by user.", file=sys.stderr)
        sys.exit(130)

    if session.status == SessionStatus.ERROR:
        if args.json:
            _write_output(json.dumps(session.to_dict(), indent=2), args.output)
        print(f"\n❌ Test failed: {session.message}", file=sys.stderr)
        sys.exit(1)

    report = service.get_report(session.test_id)
    if args.json:
        _write_output(json.dumps(report.to_dict(), indent=2), args.output)
    elif args.output:
        _write_output(json.dumps(report.to_dict(), indent=2), args.output)
        print_report(report)
    else:
        print_report(report)
    sys.exit(0)


if __name__ == "__main__":
    main()
