"""Shared fixtures: a fake website served through httpx.MockTransport."""

from typing import Callable, Dict, Union

import httpx
import pytest

from site_auditor.fetcher import FetchClient
from site_auditor.session_store import SessionStore

BASE = "https://example.com"

META_DESCRIPTION = "Example description " * 7  # 140 characters

CLEAN_HEAD = f"""
<title>Example Home</title>
<meta name="description" content="{META_DESCRIPTION}">
<meta name="viewport" content="width=device-width, initial-scale=1">
<meta property="og:title" content="Example">
<meta property="og:description" content="An example site">
<meta property="og:image" content="https://example.com/og.png">
"""

NOT_FOUND_HTML = """<!DOCTYPE html>
<html lang="en"><head><title>Missing page</title></head>
<body><p>Nothing here</p></body></html>"""


def clean_page(body: str = "<h1>Welcome</h1><p>Hello there.</p>",
               canonical: str = BASE + "/") -> str:
    """HTML that passes every detector check."""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>{CLEAN_HEAD}<link rel="canonical" href="{canonical}"></head>
<body>{body}</body>
</html>"""


def link_page(*paths: str, title: str = "Links") -> str:
    anchors = "".join(f'<a href="{path}">Go to {path}</a>' for path in paths)
    return f"<html><head><title>{title}</title></head><body>{anchors}</body></html>"


Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response], Exception]


class FakeSite:
    """Callable handler for MockTransport mapping absolute URLs to routes.

    A route is a Response, a function of the request, or an exception to
    raise. Unknown URLs answer 404.
    """

    def __init__(self, routes: Dict[str, Route]):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, html=NOT_FOUND_HTML)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        return route


@pytest.fixture
def store():
    """Fresh session store per test."""
    return SessionStore()


@pytest.fixture
def make_client():
    """Build FetchClients that talk to a FakeSite."""

    def _make(site: FakeSite, timeout: float = 10) -> FetchClient:
        return FetchClient(timeout=timeout, transport=httpx.MockTransport(site))

    return _make
