"""Tests for the command-line interface."""

import json

import httpx
import pytest

from site_auditor import cli
from site_auditor.fetcher import FetchClient
from site_auditor.service import AuditService

from conftest import BASE, FakeSite, clean_page


@pytest.fixture
def fake_service(monkeypatch, store):
    """Point the CLI at a fake site."""
    def install(routes):
        site = FakeSite(routes)
        monkeypatch.setattr(cli, "POLL_INTERVAL_SECONDS", 0.01)
        monkeypatch.setattr(cli, "AuditService", lambda config: AuditService(
            store=store,
            config=config,
            fetch_client_factory=lambda: FetchClient(transport=httpx.MockTransport(site)),
        ))
        return site

    return install


class TestCli:
    """Test cases for the CLI entry point."""

    def test_invalid_url_exits_1(self, capsys):
        """Test an invalid URL is reported without crawling."""
        with pytest.raises(SystemExit) as exc:
            cli.main(["not-a-url", "--log-level", "ERROR"])

        assert exc.value.code == 1
        assert "Invalid URL format" in capsys.readouterr().err

    def test_json_report(self, fake_service, capsys):
        """Test --json prints the report as JSON."""
        fake_service({BASE + "/": httpx.Response(200, html=clean_page())})

        with pytest.raises(SystemExit) as exc:
            cli.main([BASE, "--json", "--delay", "0", "--log-level", "ERROR"])

        assert exc.value.code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["baseUrl"] == BASE
        assert report["totalPages"] == 1
        assert report["totalIssues"] == 0

    def test_text_report(self, fake_service, capsys):
        """Test the human-readable report."""
        fake_service({BASE + "/": httpx.Response(200, html="<html><body>bare</body></html>")})

        with pytest.raises(SystemExit) as exc:
            cli.main([BASE, "--delay", "0", "--log-level", "ERROR"])

        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert f"Site Audit for: {BASE}" in out
        assert "Missing Viewport Meta Tag" in out

    def test_output_file(self, fake_service, tmp_path):
        """Test --output writes the JSON report to a file."""
        fake_service({BASE + "/": httpx.Response(200, html=clean_page())})
        output = tmp_path / "report.json"

        with pytest.raises(SystemExit):
            cli.main([BASE, "--json", "--delay", "0", "-o", str(output), "--log-level", "ERROR"])

        assert json.loads(output.read_text())["totalPages"] == 1

    def test_failed_session_exits_1(self, fake_service, capsys):
        """Test a session error exits with status 1."""
        fake_service({BASE + "/": httpx.ConnectError("connection refused")})

        with pytest.raises(SystemExit) as exc:
            cli.main([BASE, "--delay", "0", "--log-level", "ERROR"])

        assert exc.value.code == 1
        assert "Could not access any pages" in capsys.readouterr().err
