"""
Error taxonomy for the ingestion pipeline.

Granularity decides who absorbs what:
- ConfigError / DiscoveryError: fatal to the whole run
- ScrapeError: fatal to one region, the run moves on
- TransportFailure / MalformedResponseError: fatal to one brewer fetch,
  recorded as "zero records, reason logged"
"""


class IngestError(Exception):
    """Base class for all pipeline errors."""
    pass


class ConfigError(IngestError):
    """Raised when configuration or the API credential is missing/invalid."""
    pass


class DiscoveryError(IngestError):
    """Raised when the top-level region listing yields nothing usable."""
    pass


class ScrapeError(IngestError):
    """Raised when a region listing page is unreachable or structurally broken."""

    def __init__(self, message: str, region_url: str | None = None):
        super().__init__(message)
        self.region_url = region_url


class TransportFailure(IngestError):
    """A single API request failed (network error or non-2xx status)."""

    def __init__(self, entity_id: str, reason: str, status_code: int | None = None):
        super().__init__(f"brewer {entity_id}: {reason}")
        self.entity_id = entity_id
        self.reason = reason
        self.status_code = status_code


class MalformedResponseError(IngestError):
    """A request succeeded but its body is not the expected JSON shape."""

    def __init__(self, message: str, entity_id: str | None = None):
        super().__init__(message)
        self.entity_id = entity_id
