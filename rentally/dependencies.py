"""FastAPI providers for the discovery services; tests override the leaves."""
from __future__ import annotations

from fastapi import Depends

from .catalog.data_store import get_repository
from .catalog.repository import CandidateRepository
from .nearby.geolocation import GeolocationClient
from .nearby.locator import NearbyLocator
from .recommendations.cache import ResultCache, get_cache
from .recommendations.engine import RecommendationEngine
from .search.engine import RankedSearchEngine
from .visited.service import VisitHistoryService

_geolocation: GeolocationClient | None = None


def get_geolocation_client() -> GeolocationClient:
    global _geolocation
    if _geolocation is None:
        _geolocation = GeolocationClient()
    return _geolocation


def get_recommendation_engine(
    repository: CandidateRepository = Depends(get_repository),
    cache: ResultCache = Depends(get_cache),
) -> RecommendationEngine:
    return RecommendationEngine(repository, cache)


def get_search_engine(
    repository: CandidateRepository = Depends(get_repository),
) -> RankedSearchEngine:
    return RankedSearchEngine(repository)


def get_locator(
    repository: CandidateRepository = Depends(get_repository),
    geolocation: GeolocationClient = Depends(get_geolocation_client),
) -> NearbyLocator:
    return NearbyLocator(repository, geolocation)


def get_visit_history(
    repository: CandidateRepository = Depends(get_repository),
    cache: ResultCache = Depends(get_cache),
) -> VisitHistoryService:
    return VisitHistoryService(repository, cache)
