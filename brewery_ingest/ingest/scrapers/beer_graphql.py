"""
Beer GraphQL client.

One request per brewer ID, strictly sequential, rate limited, no retries:
every request counts against the provider's monthly quota, so a failed
request is recorded and the sequence moves on to the next brewer.

Pagination: a single page of `page_size` items is requested per brewer.
Observed catalogs fit in one page; brewers with more than `page_size` beers
are truncated and a warning is logged.
"""

import json
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import requests
from loguru import logger

from .base import create_session
from .rate_limiter import RateLimiter
from brewery_ingest.ingest.errors import TransportFailure

BEER_FIELDS = """
      name
      abv
      ibu
      calories
      isRetired
      overallScore
      averageRating
      ratingCount
      style {
        name
      }
      brewer {
        name
        state {
          name
        }
      }
"""


@dataclass
class FetchResult:
    """Outcome of one brewer request: a raw payload or a failure, never both."""

    entity_id: str
    payload: Optional[str] = None
    failure_reason: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.failure_reason is None

    @classmethod
    def failed(cls, failure: TransportFailure) -> "FetchResult":
        return cls(
            entity_id=failure.entity_id,
            failure_reason=failure.reason,
            status_code=failure.status_code,
        )


class BeerGraphQLFetcher:
    """
    Fetches beers per brewer from the product API.

    fetch_all() is a generator: each request happens when the caller asks
    for the next result, after the rate limiter allows it.
    """

    def __init__(
        self,
        config: dict,
        api_key: str,
        session: requests.Session | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.api_url = config["url"]
        self.query_name = config.get("query_name", "beersByBrewer")
        self.page_size = config.get("page_size", 1000)
        self.timeout = config.get("timeout", 30)
        self.api_key = api_key
        self.session = session or create_session(retries=0, accept="application/json")
        self.rate_limiter = rate_limiter or RateLimiter(config.get("min_interval", 1.0))

    def build_query(self, entity_id: str) -> str:
        return (
            "query {\n"
            f'  {self.query_name}(brewerId: {json.dumps(str(entity_id))}, first: {self.page_size}) {{\n'
            "    totalCount\n"
            f"    items {{{BEER_FIELDS}    }}\n"
            "  }\n"
            "}\n"
        )

    def build_payload(self, entity_id: str) -> dict:
        return {
            "query": self.build_query(entity_id),
            "variables": "{}",
            "operationName": None,
        }

    @property
    def headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-key": self.api_key,
        }

    def _post(self, entity_id: str) -> requests.Response:
        try:
            resp = self.session.post(
                self.api_url,
                json=self.build_payload(entity_id),
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportFailure(entity_id, f"{type(e).__name__}: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TransportFailure(
                entity_id, f"HTTP {resp.status_code}", status_code=resp.status_code
            )
        return resp

    def fetch_one(self, entity_id: str) -> FetchResult:
        """Issue one rate-limited request. Never raises for transport errors."""
        with self.rate_limiter.limit():
            try:
                resp = self._post(entity_id)
            except TransportFailure as failure:
                logger.debug(f"Fetch failed for brewer {entity_id}: {failure.reason}")
                return FetchResult.failed(failure)

        logger.debug(f"Fetched brewer {entity_id} ({len(resp.text)} bytes)")
        return FetchResult(entity_id=entity_id, payload=resp.text, status_code=resp.status_code)

    def fetch_all(self, entity_ids: Iterable[str]) -> Iterator[FetchResult]:
        """
        Yield one FetchResult per brewer ID, in input order.

        A failed request yields a failed result; later IDs are still fetched.
        """
        for entity_id in entity_ids:
            yield self.fetch_one(entity_id)
