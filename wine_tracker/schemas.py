from datetime import date
from typing import Optional

from pydantic import Field

from office_library.schemas import RequestModel


class RegionCreateModel(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    country: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    climate: Optional[str] = Field(None, max_length=200)


class RegionUpdateModel(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    climate: Optional[str] = Field(None, max_length=200)


class ProducerCreateModel(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    founded_year: Optional[int] = Field(None, ge=1000)
    website: Optional[str] = Field(None, max_length=255)
    region_id: str = Field(..., min_length=1)


class ProducerUpdateModel(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    founded_year: Optional[int] = Field(None, ge=1000)
    website: Optional[str] = Field(None, max_length=255)
    region_id: Optional[str] = None


class WineCreateModel(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    vintage: Optional[int] = Field(None, ge=1800, le=2030)
    alcohol_content: Optional[float] = Field(None, ge=0.0, le=50.0)
    color: str = Field(..., min_length=1)
    drinking_date: date
    personal_rating: Optional[int] = Field(None, ge=1, le=10)
    tasting_notes: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0.0)
    producer_id: str = Field(..., min_length=1)
    region_id: str = Field(..., min_length=1)


class WineUpdateModel(RequestModel):
    """Partial update: only the fields present are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    vintage: Optional[int] = Field(None, ge=1800, le=2030)
    alcohol_content: Optional[float] = Field(None, ge=0.0, le=50.0)
    color: Optional[str] = Field(None, min_length=1)
    drinking_date: Optional[date] = None
    personal_rating: Optional[int] = Field(None, ge=1, le=10)
    tasting_notes: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0.0)
    producer_id: Optional[str] = None
    region_id: Optional[str] = None
