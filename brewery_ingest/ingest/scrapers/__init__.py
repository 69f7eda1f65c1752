from .region_index import Region, RegionIndex, normalize_region_name
from .brewer_ids import EntityIdScraper
from .beer_graphql import BeerGraphQLFetcher, FetchResult
from .rate_limiter import RateLimiter

__all__ = [
    "Region",
    "RegionIndex",
    "normalize_region_name",
    "EntityIdScraper",
    "BeerGraphQLFetcher",
    "FetchResult",
    "RateLimiter",
]
