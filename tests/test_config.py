"""Tests for configuration loading."""

from site_auditor.config import Config


class TestConfig:
    """Test cases for Config."""

    def test_defaults(self, monkeypatch):
        """Test defaults when nothing is set in the environment."""
        for name in ("AUDITOR_MAX_PAGES", "AUDITOR_REQUEST_DELAY", "AUDITOR_REQUEST_TIMEOUT",
                     "AUDITOR_MAX_SCREENSHOTS", "AUDITOR_SCREENSHOT_BACKEND", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = Config.from_env()

        assert config.max_pages == 20
        assert config.request_delay == 0.5
        assert config.request_timeout == 10
        assert config.max_screenshots == 5
        assert config.screenshot_backend == "placeholder"
        assert config.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("AUDITOR_MAX_PAGES", "50")
        monkeypatch.setenv("AUDITOR_REQUEST_DELAY", "1.5")
        monkeypatch.setenv("AUDITOR_SCREENSHOT_BACKEND", "playwright")

        config = Config.from_env()

        assert config.max_pages == 50
        assert config.request_delay == 1.5
        assert config.screenshot_backend == "playwright"

    def test_invalid_numbers_fall_back(self, monkeypatch):
        """Test unparsable numbers use the defaults."""
        monkeypatch.setenv("AUDITOR_MAX_PAGES", "lots")
        monkeypatch.setenv("AUDITOR_REQUEST_TIMEOUT", "soon")

        config = Config.from_env()

        assert config.max_pages == 20
        assert config.request_timeout == 10

    def test_to_dict(self):
        """Test every field is exported."""
        data = Config().to_dict()
        assert data["max_pages"] == 20
        assert set(data) == {
            "max_pages", "request_delay", "request_timeout", "max_screenshots",
            "screenshot_backend", "screenshot_dir", "log_level", "log_file",
        }
