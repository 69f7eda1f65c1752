"""
Pydantic schemas for the beer GraphQL response and the normalized record.

The response models describe exactly the shape the parser relies on:

    {"data": {"<queryName>": {"totalCount": 12, "items": [ {...}, ... ]}}}

Anything that deviates fails validation instead of silently producing
missing values.

Usage:
    from brewery_ingest.schemas.beers import BeerPage, ProductRecord

    page = BeerPage.model_validate(data["data"]["beersByBrewer"])
    records = [ProductRecord.from_item(item) for item in page.items]
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NamedRef(BaseModel):
    """Nested object that only contributes its name (style, state)."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class BrewerRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    state: Optional[NamedRef] = None


class BeerItem(BaseModel):
    """One element of data.<queryName>.items."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    abv: Optional[float] = None
    ibu: Optional[float] = None
    calories: Optional[float] = None
    isRetired: Optional[bool] = None
    overallScore: Optional[float] = None
    averageRating: Optional[float] = None
    ratingCount: Optional[int] = Field(None, ge=0)
    style: Optional[NamedRef] = None
    brewer: Optional[BrewerRef] = None


class BeerPage(BaseModel):
    """data.<queryName>: one page of a brewer's beers."""
    model_config = ConfigDict(extra="ignore")

    totalCount: int = Field(..., ge=0)
    items: List[BeerItem]


class ProductRecord(BaseModel):
    """
    Normalized beer row: the unit stored in backups and the document store.

    Field order is the CSV column order.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Beer name")
    abv: Optional[float] = Field(None, description="Alcohol by volume (%)")
    ibu: Optional[float] = Field(None, description="Bitterness units")
    calories: Optional[float] = None
    isRetired: Optional[bool] = Field(None, description="No longer brewed")
    overallScore: Optional[float] = None
    averageRating: Optional[float] = None
    ratingCount: Optional[int] = Field(None, ge=0)
    styleName: Optional[str] = None
    brewerName: Optional[str] = None
    brewerRegion: Optional[str] = Field(None, description="Brewer's state name")

    @field_validator("styleName", "brewerName", "brewerRegion", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """A blank optional name is a missing one (CSV cannot tell them apart)."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_item(cls, item: BeerItem) -> "ProductRecord":
        brewer = item.brewer or BrewerRef()
        return cls(
            name=item.name,
            abv=item.abv,
            ibu=item.ibu,
            calories=item.calories,
            isRetired=item.isRetired,
            overallScore=item.overallScore,
            averageRating=item.averageRating,
            ratingCount=item.ratingCount,
            styleName=item.style.name if item.style else None,
            brewerName=brewer.name,
            brewerRegion=brewer.state.name if brewer.state else None,
        )


PRODUCT_FIELDS = list(ProductRecord.model_fields)
