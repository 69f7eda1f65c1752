"""
Data schemas for runtime validation.

Provides Pydantic models for validating API responses and normalized records.
"""

from .beers import (
    NamedRef,
    BrewerRef,
    BeerItem,
    BeerPage,
    ProductRecord,
    PRODUCT_FIELDS,
)

__all__ = [
    "NamedRef",
    "BrewerRef",
    "BeerItem",
    "BeerPage",
    "ProductRecord",
    "PRODUCT_FIELDS",
]
