from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

Kind = Literal["property", "vehicle"]
KINDS: tuple[Kind, ...] = ("property", "vehicle")

# Path segments and query values use the plural form.
PLURAL_TO_KIND: dict[str, Kind] = {"properties": "property", "vehicles": "vehicle"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class Rating(BaseModel):
    avg: float = Field(default=0.0, ge=0.0, le=5.0)
    count: int = Field(default=0, ge=0)


class PropertyPrice(BaseModel):
    per_month: float | None = None
    per_day: float | None = None
    currency: str = "INR"
    security_deposit: float = 0.0


class VehiclePrice(BaseModel):
    per_day: float | None = None
    per_hour: float | None = None
    currency: str = "INR"
    security_deposit: float = 0.0


class Listing(BaseModel):
    """Fields every candidate carries, whatever its kind."""

    id: str = Field(..., min_length=1)
    owner_id: str | None = None
    featured: bool = False
    available: bool = True
    status: str = "active"
    rating: Rating = Field(default_factory=Rating)
    city: str | None = None
    state: str | None = None
    address: str | None = None
    country: str | None = None
    coordinates: Coordinates | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_listed(self) -> bool:
        return self.available and self.status == "active"


class Property(Listing):
    kind: Literal["property"] = "property"
    title: str
    description: str | None = None
    category: str
    price: PropertyPrice = Field(default_factory=PropertyPrice)
    images: list[str] = Field(default_factory=list)
    bedrooms: int | None = None
    bathrooms: int | None = None
    area_sqft: float | None = None
    furnished: str | None = None
    amenities: list[str] = Field(default_factory=list)

    @property
    def category_value(self) -> str:
        return self.category

    @property
    def display_name(self) -> str:
        return self.title

    @property
    def media(self) -> list[str]:
        return self.images


class Vehicle(Listing):
    kind: Literal["vehicle"] = "vehicle"
    make: str
    model: str
    year: int
    vehicle_type: str
    description: str | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    seats: int | None = None
    color: str | None = None
    price: VehiclePrice = Field(default_factory=VehiclePrice)
    photos: list[str] = Field(default_factory=list)

    @property
    def category_value(self) -> str:
        return self.vehicle_type

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}"

    @property
    def media(self) -> list[str]:
        return self.photos


CandidateItem = Annotated[Union[Property, Vehicle], Field(discriminator="kind")]


class VisitedEntry(BaseModel):
    item_id: str
    visited_at: datetime = Field(default_factory=_utcnow)


class UserProfile(BaseModel):
    """Per-user state the discovery core reads; owned by the user store."""

    id: str
    name: str | None = None
    home_city: str | None = None
    favorite_property_ids: list[str] = Field(default_factory=list)
    favorite_vehicle_ids: list[str] = Field(default_factory=list)
    visited_properties: list[VisitedEntry] = Field(default_factory=list)
    visited_vehicles: list[VisitedEntry] = Field(default_factory=list)
    booked_property_ids: list[str] = Field(default_factory=list)
    booked_vehicle_ids: list[str] = Field(default_factory=list)

    def favorites(self, kind: Kind) -> list[str]:
        return self.favorite_property_ids if kind == "property" else self.favorite_vehicle_ids

    def visited(self, kind: Kind) -> list[VisitedEntry]:
        return self.visited_properties if kind == "property" else self.visited_vehicles

    def booked(self, kind: Kind) -> list[str]:
        return self.booked_property_ids if kind == "property" else self.booked_vehicle_ids


def normalize_category(category: str | None) -> str | None:
    """Map a requested category to the stored singular value.

    ``None`` and ``"all"`` mean no filter. ``"Apartments"`` -> ``"apartment"``,
    ``"Cars"`` -> ``"car"``; ``"Others"`` keeps its trailing s.
    """
    if category is None:
        return None
    value = category.strip()
    if not value or value.lower() == "all":
        return None
    if value.endswith("s") and value != "Others":
        value = value[:-1]
    return value.lower()


def matches_category(item: Property | Vehicle, category: str | None) -> bool:
    wanted = normalize_category(category)
    if wanted is None:
        return True
    return item.category_value.lower() == wanted
