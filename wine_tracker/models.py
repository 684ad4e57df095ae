from __future__ import annotations

from datetime import date
from typing import Any, Dict

from office_library.models import format_date, new_id, parse_date


class Region:
    def __init__(self, name: str, country: str, description: str | None = None,
                 climate: str | None = None, id: str | None = None) -> None:
        self.id = id or new_id()
        self.name = name
        self.country = country
        self.description = description
        self.climate = climate

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "description": self.description,
            "climate": self.climate,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Region":
        return Region(
            id=data["id"],
            name=data["name"],
            country=data["country"],
            description=data.get("description"),
            climate=data.get("climate"),
        )


class Producer:
    def __init__(self, name: str, region_id: str | None, description: str | None = None,
                 founded_year: int | None = None, website: str | None = None,
                 id: str | None = None, region_name: str | None = None) -> None:
        self.id = id or new_id()
        self.name = name
        self.region_id = region_id
        self.description = description
        self.founded_year = founded_year
        self.website = website
        self.region_name = region_name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "founded_year": self.founded_year,
            "website": self.website,
            "region_id": self.region_id,
            "region_name": self.region_name,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Producer":
        return Producer(
            id=data["id"],
            name=data["name"],
            region_id=data.get("region_id"),
            description=data.get("description"),
            founded_year=data.get("founded_year"),
            website=data.get("website"),
            region_name=data.get("region_name"),
        )


class Wine:
    """A wine as tasted: when it was drunk, what it cost and how it rated."""

    def __init__(self, name: str, color: str, drinking_date: date, producer_id: str, region_id: str,
                 vintage: int | None = None, alcohol_content: float | None = None,
                 personal_rating: int | None = None, tasting_notes: str | None = None,
                 price: float | None = None, id: str | None = None,
                 producer_name: str | None = None, region_name: str | None = None) -> None:
        self.id = id or new_id()
        self.name = name
        self.color = color
        self.drinking_date = drinking_date
        self.producer_id = producer_id
        self.region_id = region_id
        self.vintage = vintage
        self.alcohol_content = alcohol_content
        self.personal_rating = personal_rating
        self.tasting_notes = tasting_notes
        self.price = price
        self.producer_name = producer_name
        self.region_name = region_name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vintage": self.vintage,
            "alcohol_content": self.alcohol_content,
            "color": self.color,
            "drinking_date": format_date(self.drinking_date),
            "personal_rating": self.personal_rating,
            "tasting_notes": self.tasting_notes,
            "price": self.price,
            "producer_id": self.producer_id,
            "producer_name": self.producer_name,
            "region_id": self.region_id,
            "region_name": self.region_name,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Wine":
        return Wine(
            id=data["id"],
            name=data["name"],
            color=data["color"],
            drinking_date=parse_date(data["drinking_date"]),
            producer_id=data["producer_id"],
            region_id=data["region_id"],
            vintage=data.get("vintage"),
            alcohol_content=data.get("alcohol_content"),
            personal_rating=data.get("personal_rating"),
            tasting_notes=data.get("tasting_notes"),
            price=data.get("price"),
            producer_name=data.get("producer_name"),
            region_name=data.get("region_name"),
        )
