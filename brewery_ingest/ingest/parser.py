"""
Response parsing: raw GraphQL payload -> ProductRecords.
"""

import json
from typing import List, Union

from loguru import logger
from pydantic import ValidationError

from brewery_ingest.ingest.errors import MalformedResponseError
from brewery_ingest.ingest.scrapers.beer_graphql import FetchResult
from brewery_ingest.schemas.beers import BeerPage, ProductRecord


class ResponseParser:
    def __init__(self, query_name: str = "beersByBrewer"):
        self.query_name = query_name

    def parse(self, result: Union[FetchResult, str, bytes]) -> List[ProductRecord]:
        """
        Parse a fetch result (or raw payload text) into records.

        A failed FetchResult parses to an empty list. An empty `items` list is
        valid and also gives an empty list.

        Raises:
            MalformedResponseError: payload is not JSON, data.<query_name> is
                missing, or the items do not match the expected shape
        """
        entity_id = None
        if isinstance(result, FetchResult):
            if not result.ok:
                return []
            entity_id = result.entity_id
            raw = result.payload
        else:
            raw = result

        page = self._load_page(raw, entity_id)

        if page.totalCount > len(page.items):
            logger.warning(
                f"Brewer {entity_id}: {page.totalCount} beers available, "
                f"only {len(page.items)} returned (single page)"
            )

        try:
            return [ProductRecord.from_item(item) for item in page.items]
        except ValidationError as e:
            raise MalformedResponseError(
                f"Item normalization failed: {e.error_count()} error(s)", entity_id
            ) from e

    def _load_page(self, raw, entity_id) -> BeerPage:
        try:
            body = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(f"Payload is not valid JSON: {e}", entity_id) from e

        data = body.get("data") if isinstance(body, dict) else None
        node = data.get(self.query_name) if isinstance(data, dict) else None

        if not isinstance(node, dict):
            errors = body.get("errors") if isinstance(body, dict) else None
            detail = f" (errors: {errors})" if errors else ""
            raise MalformedResponseError(
                f"Expected data.{self.query_name} in response{detail}", entity_id
            )

        try:
            return BeerPage.model_validate(node)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected data.{self.query_name} shape: {e.error_count()} error(s)",
                entity_id,
            ) from e
