"""Tests for the audit service."""

import re

import httpx
import pytest

from site_auditor.config import Config
from site_auditor.fetcher import FetchClient
from site_auditor.models import SessionStatus
from site_auditor.service import (
    AuditService,
    InvalidURLError,
    SiteAuditorError,
    generate_test_id,
    validate_url,
)

from conftest import BASE, FakeSite, clean_page, link_page

pytest_plugins = ('pytest_asyncio',)


def make_service(store, site, **config):
    config.setdefault("request_delay", 0)
    return AuditService(
        store=store,
        config=Config(**config),
        fetch_client_factory=lambda: FetchClient(transport=httpx.MockTransport(site)),
    )


class TestValidateUrl:
    """Test cases for URL validation."""

    @pytest.mark.parametrize("url", [
        "https://example.com",
        "http://example.com:8080/path?q=1",
        "  https://example.com/  ",
    ])
    def test_valid(self, url):
        """Test absolute http(s) URLs are accepted."""
        assert validate_url(url) == url.strip()

    @pytest.mark.parametrize("url", [
        "",
        "example.com",
        "/relative",
        "ftp://example.com/file",
        "javascript:alert(1)",
        "https://",
    ])
    def test_invalid(self, url):
        """Test anything else is rejected."""
        with pytest.raises(InvalidURLError):
            validate_url(url)

    def test_error_hierarchy(self):
        """Test InvalidURLError can be caught as ValueError or the base error."""
        assert issubclass(InvalidURLError, SiteAuditorError)
        assert issubclass(InvalidURLError, ValueError)


def test_generate_test_id():
    """Test ids look like test_<epoch ms>_<base36>."""
    test_id = generate_test_id()
    assert re.fullmatch(r"test_\d{13}_[0-9a-z]{9}", test_id)
    assert generate_test_id() != test_id


class TestAuditService:
    """Test cases for AuditService."""

    def test_invalid_url_creates_no_session(self, store):
        """Test validation happens before any session exists."""
        service = make_service(store, FakeSite({}))
        with pytest.raises(InvalidURLError):
            service.start_test("not a url")
        assert len(store) == 0

    def test_unknown_id(self, store):
        """Test unknown ids read as None everywhere."""
        service = make_service(store, FakeSite({}))
        assert service.get_status("test_0_unknown") is None
        assert service.get_results("test_0_unknown") is None
        assert service.get_report("test_0_unknown") is None

    @pytest.mark.asyncio
    async def test_full_run(self, store):
        """Test start, poll, wait and report for a small site."""
        site = FakeSite({
            BASE + "/": httpx.Response(200, html=clean_page('<h1>Home</h1><a href="/about">About</a>')),
            BASE + "/about": httpx.Response(200, html=clean_page(canonical=BASE + "/about")),
        })
        service = make_service(store, site)

        test_id = service.start_test(BASE)

        status = service.get_status(test_id)
        assert status == {
            "status": "crawling",
            "progress": 0.0,
            "pagesFound": 0,
            "currentPage": None,
            "message": None,
        }
        assert service.get_report(test_id) is None

        session = await service.wait(test_id)
        assert session.status == SessionStatus.COMPLETE

        status = service.get_status(test_id)
        assert status["status"] == "complete"
        assert status["progress"] == 100
        assert status["pagesFound"] == 2

        results = service.get_results(test_id).to_dict()
        assert results["testId"] == test_id
        assert results["baseUrl"] == BASE
        assert [p["url"] for p in results["pages"]] == [BASE + "/", BASE + "/about"]

        report = service.get_report(test_id)
        assert report.total_pages == 2
        assert report.total_issues == 0
        assert report.to_dict() == service.get_report(test_id).to_dict()

    @pytest.mark.asyncio
    async def test_failed_run(self, store):
        """Test an unreachable site ends in error without a report."""
        site = FakeSite({BASE + "/": httpx.ConnectError("connection refused")})
        service = make_service(store, site)

        test_id = service.start_test(BASE + "/")
        session = await service.wait(test_id)

        assert session.status == SessionStatus.ERROR
        assert service.get_status(test_id)["message"].startswith("Could not access any pages")
        assert service.get_report(test_id) is None

    @pytest.mark.asyncio
    async def test_concurrent_sessions(self, store):
        """Test several sessions crawl independently."""
        site = FakeSite({
            BASE + "/": httpx.Response(200, html=link_page("/a")),
            BASE + "/a": httpx.Response(200, html=link_page()),
            "https://other.org/": httpx.Response(200, html=link_page()),
        })
        service = make_service(store, site)

        first = service.start_test(BASE + "/")
        second = service.start_test("https://other.org/")
        assert first != second

        first_session = await service.wait(first)
        second_session = await service.wait(second)

        assert len(first_session.pages) == 2
        assert len(second_session.pages) == 1
        assert second_session.base_url == "https://other.org"
        assert all(p.url.startswith(BASE) for p in first_session.pages)

    @pytest.mark.asyncio
    async def test_page_budget_from_config(self, store):
        """Test the configured budget is applied."""
        paths = [f"/p{i}" for i in range(5)]
        routes = {BASE + "/": httpx.Response(200, html=link_page(*paths))}
        routes.update({BASE + p: httpx.Response(200, html=link_page()) for p in paths})
        service = make_service(store, FakeSite(routes), max_pages=3)

        session = await service.wait(service.start_test(BASE + "/"))
        assert len(session.pages) == 3
