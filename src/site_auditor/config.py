from dotenv import load_dotenv
from dataclasses import dataclass
from typing import Optional
import os

from site_auditor.constants import (
    DEFAULT_MAX_SCREENSHOTS,
    DEFAULT_PAGE_BUDGET,
    DEFAULT_REQUEST_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)

load_dotenv()  # Loads variables from .env file


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Config:
    """Runtime configuration for the site auditor.

    Detector thresholds are fixed (see constants.py); only crawl pacing,
    screenshot handling and logging are configurable.
    """
    max_pages: int = DEFAULT_PAGE_BUDGET
    request_delay: float = DEFAULT_REQUEST_DELAY_SECONDS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    max_screenshots: int = DEFAULT_MAX_SCREENSHOTS
    screenshot_backend: str = "placeholder"  # 'placeholder' or 'playwright'
    screenshot_dir: str = "screenshots"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config: Configuration instance with values from environment
        """
        return cls(
            max_pages=_env_int("AUDITOR_MAX_PAGES", DEFAULT_PAGE_BUDGET),
            request_delay=_env_float("AUDITOR_REQUEST_DELAY", DEFAULT_REQUEST_DELAY_SECONDS),
            request_timeout=_env_float("AUDITOR_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS),
            max_screenshots=_env_int("AUDITOR_MAX_SCREENSHOTS", DEFAULT_MAX_SCREENSHOTS),
            screenshot_backend=os.getenv("AUDITOR_SCREENSHOT_BACKEND", "placeholder"),
            screenshot_dir=os.getenv("AUDITOR_SCREENSHOT_DIR", "screenshots"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE"),
        )

    def to_dict(self) -> dict:
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }


settings = Config.from_env()
