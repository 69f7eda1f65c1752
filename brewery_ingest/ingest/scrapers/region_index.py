"""
Region discovery from the top-level brewery listing.

The listing page links every first-level region (U.S. state) as
/breweries/<slug>/<id>/... inside one container that also carries unrelated
links further down, so only the first `region_limit` anchors are regions.
"""

from dataclasses import dataclass
from urllib.parse import urljoin

import requests
from loguru import logger

from .base import ListingScraper
from brewery_ingest.ingest.errors import DiscoveryError


@dataclass(frozen=True)
class Region:
    name: str
    id: str
    url: str


def normalize_region_name(slug: str, overrides: dict[str, str] | None = None) -> str:
    """
    Turn a URL slug into a display name.

    "north-dakota" -> "North Dakota". The overrides table fixes names that
    word-capitalization gets wrong ("Washington Dc" -> "Washington DC").
    """
    name = " ".join(word.capitalize() for word in slug.replace("-", " ").split())
    return (overrides or {}).get(name, name)


class RegionIndex(ListingScraper):
    def __init__(self, config: dict, name_overrides: dict | None = None, session=None):
        super().__init__(config, session)
        self.regions_path = config.get("regions_path", "/breweries/")
        self.selector = config["region_selector"]
        self.limit = config.get("region_limit", 51)
        self.pattern = self.compile_pattern(config["region_pattern"], "id")
        self.name_overrides = dict(name_overrides or {})

    @property
    def index_url(self) -> str:
        return urljoin(self.base_url + "/", self.regions_path.lstrip("/"))

    def discover_regions(self) -> list[Region]:
        """
        Scrape the region index.

        Returns:
            Regions in page order

        Raises:
            DiscoveryError: page unreachable, or zero regions found (a broken
                selector, never "no data")
        """
        url = self.index_url
        logger.info(f"Discovering regions from {url}")

        try:
            soup = self.fetch_soup(url)
        except requests.RequestException as e:
            raise DiscoveryError(f"Region index unreachable: {url} ({e})") from e

        anchors = soup.select(self.selector)[: self.limit]
        regions = []

        for anchor in anchors:
            href = anchor.get("href", "")
            match = self.pattern.search(href)
            if not match:
                logger.warning(f"Skipping anchor without region id: {href!r}")
                continue

            slug = match.groupdict().get("slug") or anchor.get_text(strip=True)
            regions.append(
                Region(
                    name=normalize_region_name(slug, self.name_overrides),
                    id=match.group("id"),
                    url=urljoin(self.base_url + "/", href),
                )
            )

        if not regions:
            raise DiscoveryError(
                f"No regions found at {url} with selector {self.selector!r}; "
                f"the page layout has probably changed"
            )

        logger.info(f"Discovered {len(regions)} regions")
        return regions
