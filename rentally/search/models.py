from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..catalog.models import CandidateItem, Kind


class SortMode(str, Enum):
    relevance = "relevance"
    price_asc = "price_asc"
    price_desc = "price_desc"
    rating = "rating"
    nearest = "nearest"


class SearchQuery(BaseModel):
    kind: Kind
    text: str | None = None
    exclude_ids: frozenset[str] = Field(default_factory=frozenset)
    sort: SortMode = SortMode.relevance
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)

    @property
    def has_origin(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class UserContext:
    """Personalisation signals for relevance scoring."""

    user_id: str
    favorite_ids: frozenset[str] = frozenset()
    booked_ids: frozenset[str] = frozenset()
    home_city: str | None = None


@dataclass
class ScoredCandidate:
    item: CandidateItem
    price: float | None
    rating: float
    distance_km: float | None
    score: float = 0.0


@dataclass
class SearchPage:
    items: list[ScoredCandidate] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    page: int = 1
    page_size: int = 20
    total_pages: int = 0
    sort: SortMode = SortMode.relevance


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    hasMore: bool
    totalPages: int
    sort: SortMode


class SearchData(BaseModel):
    results: list[dict[str, Any]]
    pagination: Pagination


class SearchResponse(BaseModel):
    success: bool = True
    data: SearchData
