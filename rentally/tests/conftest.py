from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from rentally.catalog.data_store import InMemoryCandidateStore
from rentally.catalog.models import Property, UserProfile, Vehicle

_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_property(item_id: str, **overrides: Any) -> Property:
    fields: dict[str, Any] = {
        "id": item_id,
        "title": f"Listing {item_id}",
        "category": "apartment",
        "city": "Pune",
        "price": {"per_month": 20000},
        "coordinates": {"lat": 18.52, "lng": 73.85},
        "created_at": _BASE_TIME,
    }
    fields.update(overrides)
    return Property.model_validate(fields)


def make_vehicle(item_id: str, **overrides: Any) -> Vehicle:
    fields: dict[str, Any] = {
        "id": item_id,
        "make": "Maruti",
        "model": "Swift",
        "year": 2022,
        "vehicle_type": "car",
        "city": "Pune",
        "price": {"per_day": 1500},
        "coordinates": {"lat": 18.52, "lng": 73.85},
        "created_at": _BASE_TIME,
    }
    fields.update(overrides)
    return Vehicle.model_validate(fields)


def at(minutes: int) -> datetime:
    return _BASE_TIME + timedelta(minutes=minutes)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog_items() -> list:
    apartments = [make_property(f"apt-{i}", category="apartment") for i in range(15)]
    houses = [
        make_property(f"house-{i}", category="house", featured=(i % 2 == 0)) for i in range(15)
    ]
    cars = [make_vehicle(f"car-{i}") for i in range(12)]
    bikes = [make_vehicle(f"bike-{i}", vehicle_type="bike") for i in range(12)]
    return [*apartments, *houses, *cars, *bikes]


@pytest.fixture
def profiles() -> list[UserProfile]:
    return [
        UserProfile(
            id="u1",
            home_city="Pune",
            favorite_property_ids=["apt-3", "house-2", "apt-4", "missing-1"],
            favorite_vehicle_ids=["bike-1"],
            visited_properties=[
                {"item_id": "house-5", "visited_at": at(30)},
                {"item_id": "apt-3", "visited_at": at(20)},
                {"item_id": "gone-7", "visited_at": at(10)},
                {"item_id": "apt-9", "visited_at": at(5)},
            ],
            booked_property_ids=["apt-11"],
        ),
        UserProfile(id="u-empty"),
    ]


@pytest.fixture
def store(catalog_items, profiles) -> InMemoryCandidateStore:
    return InMemoryCandidateStore(catalog_items, profiles, seed=7)
