from __future__ import annotations

import asyncio
import logging

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.dependencies import get_current_user_id, require_user_id
from .catalog.data_store import get_repository
from .catalog.models import KINDS, PLURAL_TO_KIND, Kind
from .catalog.presenters import to_result
from .catalog.repository import CandidateRepository
from .dependencies import (
    get_locator,
    get_recommendation_engine,
    get_search_engine,
    get_visit_history,
)
from .errors import DiscoveryError, UpstreamUnavailable, ValidationError
from .geo.coordinates import parse_coordinates
from .logging_config import configure_logging
from .nearby.locator import NearbyHit, NearbyLocator
from .recommendations.cache import ResultCache, get_cache
from .recommendations.engine import RecommendationEngine
from .recommendations.models import CacheClearedResponse, RecommendedResponse
from .search.config import DEFAULT_SEARCH_CONFIG
from .search.engine import RankedSearchEngine, load_user_context
from .search.models import Pagination, SearchData, SearchQuery, SearchResponse, SortMode
from .visited.service import VisitHistoryService

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Rentally Discovery API", version="1.0.0")

_SEARCH_TYPES: dict[str, Kind] = {"property": "property", "vehicle": "vehicle"}
_NEARBY_TYPES: dict[str, tuple[Kind, ...]] = {
    "properties": ("property",),
    "vehicles": ("vehicle",),
    "all": KINDS,
}


def _kind_from_path(segment: str) -> Kind:
    kind = PLURAL_TO_KIND.get(segment.lower())
    if kind is None:
        raise ValidationError("Type must be 'properties' or 'vehicles'")
    return kind


# ── Error handling ───────────────────────────────────────────────────────


@app.exception_handler(DiscoveryError)
async def discovery_error_handler(request: Request, exc: DiscoveryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "request"
        message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "message": message})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Recommendations ──────────────────────────────────────────────────────


@app.get("/recommended/cache/stats")
def recommendation_cache_stats(
    user_id: str = Depends(require_user_id),
    cache: ResultCache = Depends(get_cache),
) -> dict:
    return cache.stats()


@app.delete("/recommended/cache", response_model=CacheClearedResponse)
def clear_recommendation_cache(
    user_id: str = Depends(require_user_id),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> CacheClearedResponse:
    cleared = engine.invalidate_user(user_id)
    return CacheClearedResponse(message=f"Cleared {cleared} cache entries")


@app.get("/recommended/{kind}", response_model=RecommendedResponse)
async def recommended(
    kind: str,
    category: str = Query("all"),
    user_id: str | None = Depends(get_current_user_id),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> RecommendedResponse:
    item_kind = _kind_from_path(kind)
    result = await engine.recommend(user_id, category, item_kind)

    if result.fallback:
        message = f"Recommended {kind} (fallback to random)"
    elif result.cached:
        message = f"Recommended {kind} fetched from cache"
    else:
        message = f"Recommended {kind} fetched successfully"

    return RecommendedResponse(
        results=[to_result(item) for item in result.items],
        total=len(result.items),
        cached=result.cached,
        fallback=result.fallback,
        message=message,
    )


# ── Search ───────────────────────────────────────────────────────────────


@app.get("/search/paginated", response_model=SearchResponse)
async def search_paginated(
    type: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_SEARCH_CONFIG.default_page_size, ge=1),
    exclude: str | None = Query(None),
    query: str | None = Query(None),
    sort: str = Query(SortMode.relevance.value),
    lat: str | None = Query(None),
    lng: str | None = Query(None),
    user_id: str | None = Depends(get_current_user_id),
    repository: CandidateRepository = Depends(get_repository),
    engine: RankedSearchEngine = Depends(get_search_engine),
) -> SearchResponse:
    kind = _SEARCH_TYPES.get((type or "").lower())
    if kind is None:
        raise ValidationError("Type is required and must be 'property' or 'vehicle'")
    try:
        sort_mode = SortMode(sort)
    except ValueError:
        raise ValidationError(
            "Sort must be one of: " + ", ".join(m.value for m in SortMode)
        ) from None
    origin = parse_coordinates(lat, lng)

    search_query = SearchQuery(
        kind=kind,
        text=query,
        exclude_ids=frozenset(i.strip() for i in (exclude or "").split(",") if i.strip()),
        sort=sort_mode,
        page=page,
        page_size=min(limit, DEFAULT_SEARCH_CONFIG.max_page_size),
        latitude=origin[0] if origin else None,
        longitude=origin[1] if origin else None,
    )

    try:
        user = await load_user_context(repository, user_id, kind)
        result = await engine.search(search_query, user)
    except DiscoveryError:
        raise
    except Exception as exc:
        logger.exception("Search failed for type=%s query=%r", kind, query)
        raise UpstreamUnavailable("Failed to search listings") from exc

    return SearchResponse(
        data=SearchData(
            results=[to_result(c.item, c.distance_km) for c in result.items],
            pagination=Pagination(
                page=result.page,
                limit=result.page_size,
                total=result.total,
                hasMore=result.has_more,
                totalPages=result.total_pages,
                sort=result.sort,
            ),
        )
    )


# ── Nearby ───────────────────────────────────────────────────────────────


def _nearby_results(hits: list[NearbyHit]) -> list[dict]:
    return [{**to_result(h.item, h.distance_km), "distanceUnit": "km"} for h in hits]


async def _nearby(
    request: Request,
    locator: NearbyLocator,
    kinds: tuple[Kind, ...],
    latitude: str | None,
    longitude: str | None,
    max_distance: str | None,
    city: str | None,
) -> dict:
    coords = await locator.resolve_coordinates(
        latitude,
        longitude,
        headers=request.headers,
        peer=request.client.host if request.client else None,
    )
    radius_km = locator.radius_km(max_distance)
    city_filter = city.strip() if city and city.strip() else None

    try:
        found = await locator.find_many(
            coords.latitude, coords.longitude, kinds, radius_km * 1000.0, city_filter
        )
    except DiscoveryError:
        raise
    except Exception as exc:
        logger.exception("Nearby lookup failed around (%s, %s)", coords.latitude, coords.longitude)
        raise UpstreamUnavailable("Failed to fetch nearby listings") from exc

    return {
        "location": {
            "latitude": coords.latitude,
            "longitude": coords.longitude,
            "city": city_filter,
            "detectedCity": coords.city,
            "coordinateSource": coords.source,
            "searchRadius": radius_km,
            "searchRadiusUnit": "km",
        },
        "found": found,
    }


@app.get("/nearby")
async def nearby(
    request: Request,
    latitude: str | None = Query(None),
    longitude: str | None = Query(None),
    maxDistance: str | None = Query(None),
    type: str = Query("all"),
    city: str | None = Query(None),
    locator: NearbyLocator = Depends(get_locator),
) -> dict:
    kinds = _NEARBY_TYPES.get(type.lower())
    if kinds is None:
        raise ValidationError("Type must be 'properties', 'vehicles' or 'all'")

    outcome = await _nearby(request, locator, kinds, latitude, longitude, maxDistance, city)
    properties = _nearby_results(outcome["found"].get("property", []))
    vehicles = _nearby_results(outcome["found"].get("vehicle", []))
    return {
        "success": True,
        "data": {
            "location": outcome["location"],
            "properties": properties,
            "vehicles": vehicles,
            "total": {
                "properties": len(properties),
                "vehicles": len(vehicles),
                "all": len(properties) + len(vehicles),
            },
        },
        "message": "Nearby listings fetched successfully",
    }


@app.get("/nearby/coordinates")
async def nearby_coordinates(
    request: Request,
    latitude: str | None = Query(None),
    longitude: str | None = Query(None),
    locator: NearbyLocator = Depends(get_locator),
) -> dict:
    coords = await locator.resolve_coordinates(
        latitude,
        longitude,
        headers=request.headers,
        peer=request.client.host if request.client else None,
    )
    return {
        "success": True,
        "data": coords.as_dict(),
        "message": "Current coordinates retrieved successfully",
    }


@app.get("/nearby/{kind}")
async def nearby_kind(
    kind: str,
    request: Request,
    latitude: str | None = Query(None),
    longitude: str | None = Query(None),
    maxDistance: str | None = Query(None),
    city: str | None = Query(None),
    locator: NearbyLocator = Depends(get_locator),
) -> dict:
    item_kind = _kind_from_path(kind)
    outcome = await _nearby(request, locator, (item_kind,), latitude, longitude, maxDistance, city)
    results = _nearby_results(outcome["found"][item_kind])
    return {
        "success": True,
        "data": {
            "location": outcome["location"],
            kind.lower(): results,
            "total": len(results),
        },
    }


# ── Featured ─────────────────────────────────────────────────────────────


@app.get("/featured")
async def featured(
    type: str = Query("all"),
    limit: int = Query(10, ge=1, le=50),
    repository: CandidateRepository = Depends(get_repository),
) -> dict:
    kinds = _NEARBY_TYPES.get(type.lower())
    if kinds is None:
        raise ValidationError("Type must be 'properties', 'vehicles' or 'all'")
    try:
        batches = await asyncio.gather(*(repository.find_featured(k, limit) for k in kinds))
    except Exception as exc:
        logger.exception("Featured lookup failed")
        raise UpstreamUnavailable("Failed to fetch featured listings") from exc
    found = dict(zip(kinds, batches))
    properties = [to_result(i) for i in found.get("property", [])]
    vehicles = [to_result(i) for i in found.get("vehicle", [])]
    return {
        "success": True,
        "data": {
            "properties": properties,
            "vehicles": vehicles,
            "total": {
                "properties": len(properties),
                "vehicles": len(vehicles),
                "all": len(properties) + len(vehicles),
            },
        },
        "message": "Featured listings fetched successfully",
    }


# ── Visit history ────────────────────────────────────────────────────────


@app.post("/visited/{kind}/{item_id}")
async def record_visit(
    kind: str,
    item_id: str,
    user_id: str = Depends(require_user_id),
    history: VisitHistoryService = Depends(get_visit_history),
) -> dict:
    item_kind = _kind_from_path(kind)
    count = await history.record(user_id, item_kind, item_id)
    return {
        "success": True,
        "message": f"{item_kind.capitalize()} added to visited list",
        "visitedCount": count,
    }


@app.get("/visited/{kind}")
async def visited(
    kind: str,
    limit: int = Query(20, ge=1, le=20),
    user_id: str = Depends(require_user_id),
    history: VisitHistoryService = Depends(get_visit_history),
) -> dict:
    item_kind = _kind_from_path(kind)
    pairs = await history.list(user_id, item_kind, limit)
    results = [
        {item_kind: to_result(item), "visitedAt": entry.visited_at.isoformat()}
        for item, entry in pairs
    ]
    return {"success": True, "results": results, "total": len(results)}


@app.delete("/visited/{kind}")
async def clear_visited(
    kind: str,
    user_id: str = Depends(require_user_id),
    history: VisitHistoryService = Depends(get_visit_history),
) -> dict:
    item_kind = _kind_from_path(kind)
    await history.clear(user_id, item_kind)
    return {"success": True, "message": f"Visited {kind.lower()} cleared successfully"}
