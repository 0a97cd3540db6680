# src/site_auditor/constants.py
"""Centralized constants for the site auditor.

This module contains the fixed crawl limits, request identity and the
detector thresholds. The thresholds are part of the output contract and are
deliberately not exposed through config.py.
"""

# =============================================================================
# Crawler Constants
# =============================================================================

# Maximum pages dequeued per session
DEFAULT_PAGE_BUDGET = 20

# Pause between two page fetches (seconds)
DEFAULT_REQUEST_DELAY_SECONDS = 0.5

# Hard wall-clock bound on a single fetch (seconds)
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10

# Crawl phase occupies the first half of the progress range
CRAWL_PROGRESS_SHARE = 50

# Progress checkpoints after the crawl loop
ANALYZING_PROGRESS = 60
SCREENSHOTS_DONE_PROGRESS = 90
COMPLETE_PROGRESS = 100

# Pages sent to the screenshot collaborator
DEFAULT_MAX_SCREENSHOTS = 5

# Link sample stored on each page record
PAGE_LINK_SAMPLE_SIZE = 10

# Discovery link text is truncated to this many characters
MAX_LINK_TEXT_LENGTH = 50

# Placeholder for anchors without visible text
EMPTY_LINK_TEXT = "(no text)"
SEED_LINK_TEXT = "Starting URL"
META_TAG_LINK_TEXT = "(meta tag)"
REDIRECT_LINK_TEXT = "(redirect)"
INITIAL_SOURCE = "initial"

# Status codes counted as a successfully reached page
SUCCESS_STATUS_MIN = 200
SUCCESS_STATUS_MAX = 399

FATAL_NO_PAGES_MESSAGE = (
    "Could not access any pages on this website. "
    "The site may have bot protection or CORS restrictions."
)
FATAL_GENERIC_MESSAGE = "An error occurred during testing"


# =============================================================================
# Request identity
# =============================================================================

USER_AGENT = "Mozilla/5.0 (compatible; SiteAuditor/1.0; +https://siteauditor.com/bot)"

REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

TIMEOUT_ERROR_MESSAGE = "Request timed out (10s limit)"
NETWORK_ERROR_MESSAGE = "Network error or CORS blocked"
GENERIC_FETCH_ERROR_MESSAGE = "Failed to fetch page"


# =============================================================================
# URL filtering
# =============================================================================

# Path extensions never enqueued for crawling
STATIC_ASSET_EXTENSIONS = (
    "css", "js", "jpg", "jpeg", "png", "gif", "svg", "webp",
    "woff", "woff2", "ttf", "ico", "xml", "json",
)

# Substrings marking non-content endpoints
NON_CONTENT_MARKERS = (
    "/wp-json/oembed/",
    "/feed/",
    "/xmlrpc.php",
    "?format=xml",
)

# Extensions accepted for <link> based discovery
HTML_LIKE_EXTENSIONS = ("html", "htm", "php")


# =============================================================================
# Issue Detector thresholds
# =============================================================================

# Soft 404 detection only inspects the start of <body>
SOFT_404_BODY_SCAN_CHARS = 5000

META_DESCRIPTION_MIN_LENGTH = 120
META_DESCRIPTION_MAX_LENGTH = 160

MAX_INLINE_STYLES = 10
MIN_READABLE_FONT_PX = 12

MAX_INLINE_SCRIPT_CHARS = 10000
MAX_EXTERNAL_SCRIPTS = 15
MAX_BLOCKING_SCRIPTS = 3
MAX_RENDER_BLOCKING_STYLESHEETS = 5
MAX_IMAGES_WITHOUT_DIMENSIONS = 3
MAX_DOM_TAGS = 1500

MAX_INLINE_EVENT_HANDLERS = 5

DEPRECATED_TAGS = ("font", "center", "marquee", "blink", "strike", "big", "tt")

INLINE_EVENT_ATTRIBUTES = ("onclick", "onload", "onerror", "onmouseover")

JS_ERROR_MARKERS = ("Uncaught", "TypeError", "ReferenceError")

BROKEN_SRC_PREFIXES = ("data:image/svg+xml", "#", "javascript:")

OPEN_GRAPH_PROPERTIES = ("og:title", "og:description", "og:image")
