"""
Brewery ingestion pipeline.

Discovers breweries per region from listing pages, fetches their beers from
a quota-limited GraphQL API and persists them to CSV backups and DuckDB.
"""

__version__ = "0.1.0"
