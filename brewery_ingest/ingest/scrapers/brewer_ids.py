"""
Brewer ID extraction from a region listing page.

Each row of the active-brewers table holds two links: the brewer and its
city. Only the first one is the brewer. Closed brewers are listed in a
sibling table with identical row markup, so rows are only read from inside
the configured container.
"""

import requests
from loguru import logger

from .base import ListingScraper
from brewery_ingest.ingest.errors import ScrapeError


class EntityIdScraper(ListingScraper):
    def __init__(self, config: dict, session=None):
        super().__init__(config, session)
        self.container = config["brewer_container"]
        self.row_selector = config.get("brewer_row", "tr")
        self.pattern = self.compile_pattern(config["brewer_pattern"], "id")

    def scrape_entity_ids(self, region_url: str) -> list[str]:
        """
        Collect brewer IDs from one region listing.

        Returns:
            Brewer IDs in page order, duplicates removed. Empty if the region
            has no active brewers.

        Raises:
            ScrapeError: page unreachable or brewer table missing
        """
        try:
            soup = self.fetch_soup(region_url)
        except requests.RequestException as e:
            raise ScrapeError(f"Region page unreachable: {e}", region_url) from e

        table = soup.select_one(self.container)
        if table is None:
            raise ScrapeError(
                f"Container {self.container!r} not found on {region_url}",
                region_url,
            )

        ids: dict[str, None] = {}
        for row in table.select(self.row_selector):
            link = row.find("a", href=True)
            if link is None:
                continue
            match = self.pattern.search(link["href"])
            if match:
                ids.setdefault(match.group("id"), None)

        logger.debug(f"Found {len(ids)} brewer IDs on {region_url}")
        return list(ids)
