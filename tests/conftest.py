"""
Shared pytest fixtures for brewery_ingest tests.

Provides listing-page HTML fixtures, GraphQL payload builders, a fake clock
for rate-limit tests and mocked requests sessions.
"""

import json
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests


# ─────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────

class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float):
        self.now += seconds


def make_response(status_code: int = 200, text: str = "") -> Mock:
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


def beer_item(name: str, **overrides) -> dict:
    item = {
        "name": name,
        "abv": 5.2,
        "ibu": 35.0,
        "calories": 160.0,
        "isRetired": False,
        "overallScore": 87.5,
        "averageRating": 3.61,
        "ratingCount": 42,
        "style": {"name": "American Pale Ale"},
        "brewer": {"name": "Fargo Brewing", "state": {"name": "North Dakota"}},
    }
    item.update(overrides)
    return item


def beer_payload(items: list, total_count: int = None, query_name: str = "beersByBrewer") -> str:
    return json.dumps({
        "data": {
            query_name: {
                "totalCount": len(items) if total_count is None else total_count,
                "items": items,
            }
        }
    })


# ─────────────────────────────────────────────────────────────────────
# Filesystem
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ─────────────────────────────────────────────────────────────────────
# Configuration Fixtures
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def listing_config():
    return {
        "base_url": "https://www.ratebeer.com",
        "regions_path": "/breweries/",
        "region_selector": "#default a",
        "region_limit": 4,
        "region_pattern": r"/breweries/(?P<slug>[^/]+)/(?P<id>\d+)/",
        "brewer_container": "#brewerTable",
        "brewer_row": "tr",
        "brewer_pattern": r"/brewers/[^/]+/(?P<id>\d+)/",
        "timeout": 5,
    }


@pytest.fixture
def api_config():
    return {
        "url": "https://api.example.test/graphql/",
        "query_name": "beersByBrewer",
        "page_size": 1000,
        "min_interval": 1.0,
        "timeout": 5,
    }


@pytest.fixture
def name_overrides():
    return {"Washington Dc": "Washington DC"}


# ─────────────────────────────────────────────────────────────────────
# HTML Fixtures
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def region_index_html():
    """Four region anchors followed by unrelated links in the same container."""
    return """
    <html><body>
      <div id="default">
        <a href="/breweries/alabama/1/213/">Alabama</a>
        <a href="/breweries/north-dakota/35/213/">North Dakota</a>
        <a href="/breweries/washington-dc/51/213/">Washington DC</a>
        <a href="/breweries/new-hampshire/30/213/">New Hampshire</a>
        <a href="/breweries/bars/">Beer bars</a>
        <a href="/places/">Places</a>
      </div>
      <div id="footer"><a href="/breweries/canada/0/39/">Canada</a></div>
    </body></html>
    """


@pytest.fixture
def brewer_listing_html():
    """Active table plus a closed-brewers table sharing the same row markup."""
    return """
    <html><body>
      <table id="brewerTable" class="table">
        <tr><th>Name</th><th>City</th></tr>
        <tr>
          <td><a href="/brewers/fargo-brewing/12345/">Fargo Brewing</a></td>
          <td><a href="/places/city/fargo/1/">Fargo</a></td>
        </tr>
        <tr>
          <td><a href="/brewers/drekker-brewing/23456/">Drekker Brewing</a></td>
          <td><a href="/places/city/fargo/1/">Fargo</a></td>
        </tr>
        <tr>
          <td><a href="/brewers/laughing-sun/34567/">Laughing Sun</a></td>
          <td><a href="/places/city/bismarck/2/">Bismarck</a></td>
        </tr>
      </table>
      <table id="closedTable" class="table">
        <tr>
          <td><a href="/brewers/old-gone-brewery/99999/">Old Gone Brewery</a></td>
          <td><a href="/places/city/minot/3/">Minot</a></td>
        </tr>
      </table>
    </body></html>
    """


# ─────────────────────────────────────────────────────────────────────
# Mock Session / Clock Fixtures
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def html_session():
    """Mock requests.Session whose get() serves pages from a url -> html dict."""
    session = Mock()
    session.pages = {}

    def get(url, timeout=None):
        if url not in session.pages:
            return make_response(404, "")
        return make_response(200, session.pages[url])

    session.get.side_effect = get
    return session


@pytest.fixture
def log_messages():
    """Collect loguru messages (level, text) emitted during a test."""
    from loguru import logger

    messages = []
    handler_id = logger.add(
        lambda message: messages.append((message.record["level"].name, message.record["message"])),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
