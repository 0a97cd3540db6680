"""HTML feature extraction: title, same-origin links and page structure."""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from site_auditor.constants import (
    EMPTY_LINK_TEXT,
    HTML_LIKE_EXTENSIONS,
    MAX_LINK_TEXT_LENGTH,
    NON_CONTENT_MARKERS,
    STATIC_ASSET_EXTENSIONS,
)

DEFAULT_PORTS = {"http": 80, "https": 443}


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for a URL, dropping default ports.

    Args:
        url: Absolute URL

    Returns:
        Origin string, or "" when the URL has no network location
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return ""
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        return ""
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def normalize_url(url: str) -> str:
    """Remove the fragment and give a bare origin the root path.

    Everything else is compared verbatim.
    """
    url = urldefrag(url)[0]
    parts = urlsplit(url)
    if parts.netloc and not parts.path:
        return urlunsplit((parts.scheme, parts.netloc, "/", parts.query, ""))
    return url


def resolve_url(href: str, page_url: str) -> Optional[str]:
    """Resolve an href against the page URL.

    Returns:
        Absolute URL without fragment, or None if the href is unusable
    """
    href = (href or "").strip()
    if not href:
        return None
    try:
        return normalize_url(urljoin(page_url, href))
    except ValueError:
        return None


def _path_extension(url: str) -> str:
    last_segment = urlsplit(url).path.rsplit("/", 1)[-1]
    if "." not in last_segment:
        return ""
    return last_segment.rsplit(".", 1)[-1].lower()


def is_crawlable(url: str) -> bool:
    """Check whether a same-origin URL should be enqueued.

    Static assets and feed/oEmbed/xmlrpc endpoints are never crawled.
    """
    if _path_extension(url) in STATIC_ASSET_EXTENSIONS:
        return False
    return not any(marker in url for marker in NON_CONTENT_MARKERS)


def is_html_like(url: str) -> bool:
    """True for URLs with an HTML-like extension or no extension at all."""
    extension = _path_extension(url)
    return extension == "" or extension in HTML_LIKE_EXTENSIONS


def truncate_link_text(text: str) -> str:
    return text[:MAX_LINK_TEXT_LENGTH]


@dataclass
class ExtractedLink:
    """A same-origin anchor with its visible text."""

    href: str
    text: str


@dataclass
class FormFeature:
    inputs: List[str] = field(default_factory=list)
    has_submit: bool = False


@dataclass
class ExtractedFeatures:
    """Everything the crawler needs from one page's markup."""

    title: str = "Untitled"
    has_title: bool = False
    links: List[ExtractedLink] = field(default_factory=list)
    meta_links: List[str] = field(default_factory=list)
    buttons: List[str] = field(default_factory=list)
    button_count: int = 0
    forms: List[FormFeature] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    headings: List[str] = field(default_factory=list)

    @property
    def crawlable_links(self) -> List[ExtractedLink]:
        return [link for link in self.links if is_crawlable(link.href)]


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def extract_features(
    html: str,
    page_url: str,
    base_origin: str,
    soup: Optional[BeautifulSoup] = None,
) -> ExtractedFeatures:
    """Extract title, links and structural features from HTML.

    Args:
        html: Raw HTML
        page_url: URL the HTML was served from (used to resolve hrefs)
        base_origin: Origin of the crawl; other origins are dropped
        soup: Already parsed document, to avoid parsing twice

    Returns:
        ExtractedFeatures for the page
    """
    if soup is None:
        soup = parse_html(html)

    features = ExtractedFeatures()

    title_tag = soup.find("title")
    title_text = title_tag.get_text(strip=True) if title_tag else ""
    if title_text:
        features.title = title_text
        features.has_title = True

    for anchor in soup.find_all("a", href=True):
        absolute_url = resolve_url(anchor["href"], page_url)
        if not absolute_url or origin_of(absolute_url) != base_origin:
            continue
        text = anchor.get_text(" ", strip=True) or EMPTY_LINK_TEXT
        features.links.append(
            ExtractedLink(href=absolute_url, text=truncate_link_text(text))
        )

    for link_tag in soup.find_all("link", href=True):
        absolute_url = resolve_url(link_tag["href"], page_url)
        if not absolute_url or origin_of(absolute_url) != base_origin:
            continue
        if is_html_like(absolute_url) and is_crawlable(absolute_url):
            features.meta_links.append(absolute_url)

    # Buttons: <button> elements and <input type="button">
    for button in soup.find_all("button"):
        features.button_count += 1
        text = button.get_text(" ", strip=True)
        if text:
            features.buttons.append(text)
    for input_button in soup.find_all("input", attrs={"type": True}):
        if input_button["type"].strip().lower() != "button":
            continue
        features.button_count += 1
        value = (input_button.get("value") or "").strip()
        if value:
            features.buttons.append(value)

    for form in soup.find_all("form"):
        form_feature = FormFeature()
        for form_input in form.find_all("input"):
            input_type = (form_input.get("type") or "text").strip().lower()
            if input_type == "submit":
                form_feature.has_submit = True
            elif input_type != "hidden":
                form_feature.inputs.append(input_type)
        for button in form.find_all("button"):
            # A button without a type submits its form
            if (button.get("type") or "submit").strip().lower() == "submit":
                form_feature.has_submit = True
        if form_feature.inputs:
            features.forms.append(form_feature)

    features.images = [
        img["src"] for img in soup.find_all("img", src=True) if img["src"].strip()
    ]

    features.headings = [
        text
        for text in (
            heading.get_text(" ", strip=True)
            for heading in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
        )
        if text
    ]

    return features
