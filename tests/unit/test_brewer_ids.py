"""
Unit tests for EntityIdScraper (brewer IDs per region).

Run with: pytest tests/unit/test_brewer_ids.py -v
"""

import pytest

from brewery_ingest.ingest.errors import ScrapeError
from brewery_ingest.ingest.scrapers.brewer_ids import EntityIdScraper

REGION_URL = "https://www.ratebeer.com/breweries/north-dakota/35/213/"


@pytest.fixture
def scraper(listing_config, html_session):
    return EntityIdScraper(listing_config, session=html_session)


def test_ids_come_from_active_table_only(scraper, html_session, brewer_listing_html):
    html_session.pages[REGION_URL] = brewer_listing_html

    ids = scraper.scrape_entity_ids(REGION_URL)

    assert ids == ["12345", "23456", "34567"]
    assert "99999" not in ids


def test_only_first_link_of_each_row_is_used(scraper, html_session):
    html_session.pages[REGION_URL] = """
        <table id="brewerTable">
          <tr>
            <td><a href="/brewers/one/1/">One</a></td>
            <td><a href="/brewers/sub-location/2/">Taproom</a></td>
          </tr>
        </table>
    """
    assert scraper.scrape_entity_ids(REGION_URL) == ["1"]


def test_duplicate_ids_keep_first_position(scraper, html_session):
    html_session.pages[REGION_URL] = """
        <table id="brewerTable">
          <tr><td><a href="/brewers/a/3/">A</a></td></tr>
          <tr><td><a href="/brewers/b/1/">B</a></td></tr>
          <tr><td><a href="/brewers/a/3/">A again</a></td></tr>
        </table>
    """
    assert scraper.scrape_entity_ids(REGION_URL) == ["3", "1"]


def test_empty_table_returns_empty_list(scraper, html_session):
    html_session.pages[REGION_URL] = """
        <table id="brewerTable"><tr><th>Name</th><th>City</th></tr></table>
    """
    assert scraper.scrape_entity_ids(REGION_URL) == []


def test_missing_container_raises_scrape_error(scraper, html_session):
    html_session.pages[REGION_URL] = """
        <table id="closedTable">
          <tr><td><a href="/brewers/old/9/">Old</a></td></tr>
        </table>
    """
    with pytest.raises(ScrapeError) as exc_info:
        scraper.scrape_entity_ids(REGION_URL)

    assert exc_info.value.region_url == REGION_URL


def test_unreachable_page_raises_scrape_error(scraper):
    with pytest.raises(ScrapeError, match="unreachable"):
        scraper.scrape_entity_ids(REGION_URL)
