"""
Shared HTTP plumbing for listing scrapers and the product API client.

Listing pages are plain website traffic: transient 429/5xx responses are
retried by urllib3. API requests count against the monthly quota, so the API
session is created with retries disabled.
"""

import re

import requests
from bs4 import BeautifulSoup
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def create_session(retries: int = 5, accept: str = "text/html") -> requests.Session:
    session = requests.Session()
    if retries:
        retry = Retry(
            total=retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
    else:
        retry = Retry(total=0, connect=0, read=0, redirect=3, status=0)
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": accept,
    })
    return session


class ListingScraper:
    """
    Base for the HTML listing scrapers.

    Subclasses call fetch_soup() and translate failures into their own
    error type (DiscoveryError for the index, ScrapeError per region).
    """

    def __init__(self, config: dict, session: requests.Session | None = None):
        self.base_url = config["base_url"].rstrip("/")
        self.timeout = config.get("timeout", 20)
        self.config = config
        self.session = session or create_session()

    def fetch_soup(self, url: str) -> BeautifulSoup:
        """
        GET a page and parse it.

        Raises:
            requests.RequestException: on network errors or non-2xx status
        """
        logger.debug(f"GET {url}")
        resp = self.session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return BeautifulSoup(resp.text, "html.parser")

    @staticmethod
    def compile_pattern(pattern: str, group: str) -> re.Pattern:
        compiled = re.compile(pattern)
        if group not in compiled.groupindex:
            raise ValueError(f"Pattern {pattern!r} has no named group '{group}'")
        return compiled
