from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from rentally.app import app
from rentally.auth.tokens import issue_token
from rentally.catalog.data_store import InMemoryCandidateStore, get_repository
from rentally.dependencies import get_geolocation_client
from rentally.nearby.config import GeolocationConfig
from rentally.nearby.geolocation import GeolocationClient
from rentally.recommendations.cache import ResultCache, get_cache
from rentally.search.engine import RankedSearchEngine

PUNE = {"status": "success", "lat": 18.52, "lon": 73.85, "city": "Pune", "country": "India"}


def _geolocation(payload, status=200) -> GeolocationClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(payload))

    return GeolocationClient(
        GeolocationConfig(base_url="http://geo.test", timeout=1.0),
        transport=httpx.MockTransport(handler),
    )


def _auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user_id)}"}


@pytest.fixture
def client(store):
    cache = ResultCache()
    geolocation = _geolocation(PUNE)
    app.dependency_overrides[get_repository] = lambda: store
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_geolocation_client] = lambda: geolocation
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


# ── Recommendations ──────────────────────────────────────────────────────


def test_recommended_anonymous_then_cached(client):
    first = client.get("/recommended/properties")
    assert first.status_code == 200
    body = first.json()
    assert body["success"] is True
    assert body["total"] == 20
    assert body["cached"] is False
    assert body["message"] == "Recommended properties fetched successfully"
    assert {r["itemType"] for r in body["results"]} == {"property"}

    second = client.get("/recommended/properties").json()
    assert second["cached"] is True
    assert second["message"] == "Recommended properties fetched from cache"
    assert [r["id"] for r in second["results"]] == [r["id"] for r in body["results"]]


def test_recommended_is_personalised_with_token(client):
    body = client.get("/recommended/properties", headers=_auth("u1")).json()
    assert [r["id"] for r in body["results"]][:3] == ["house-2", "apt-3", "apt-4"]


def test_recommended_token_cookie_is_accepted(client):
    client.cookies.set("token", issue_token("u1"))
    body = client.get("/recommended/properties?category=Houses").json()
    assert body["results"][0]["id"] == "house-2"
    assert body["total"] == 10


def test_recommended_vehicle_result_shape(client):
    body = client.get("/recommended/vehicles?category=Bikes").json()
    assert 0 < body["total"] <= 10
    first = body["results"][0]
    assert first["vehicleType"] == "bike"
    assert first["title"] == "Maruti Swift"
    assert first["price"] == 1500
    assert first["priceUnit"] == "day"


def test_recommended_rejects_unknown_kind(client):
    resp = client.get("/recommended/boats")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_recommended_fallback_is_reported():
    class SampleFailsOnce(InMemoryCandidateStore):
        failed = False

        async def sample(self, query, size):
            if not SampleFailsOnce.failed:
                SampleFailsOnce.failed = True
                raise ConnectionError("listings unavailable")
            return await super().sample(query, size)

    flaky = SampleFailsOnce.from_records({"properties": [
        {"id": f"p{i}", "title": f"Flat {i}", "category": "apartment"} for i in range(25)
    ]})
    app.dependency_overrides[get_repository] = lambda: flaky
    cache = ResultCache()
    app.dependency_overrides[get_cache] = lambda: cache
    try:
        body = TestClient(app).get("/recommended/properties").json()
    finally:
        app.dependency_overrides.clear()
    assert body["fallback"] is True
    assert body["total"] == 20
    assert body["message"] == "Recommended properties (fallback to random)"


def test_recommended_store_down_is_500(client, store):
    with patch.object(store, "sample", side_effect=ConnectionError("listings down")):
        resp = client.get("/recommended/vehicles")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Failed to fetch recommendations"}


def test_clear_cache_requires_token(client):
    resp = client.delete("/recommended/cache")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Not Authorized"}


def test_clear_cache_drops_only_callers_entries(client):
    client.get("/recommended/properties", headers=_auth("u1"))
    client.get("/recommended/vehicles", headers=_auth("u1"))
    client.get("/recommended/properties")
    resp = client.delete("/recommended/cache", headers=_auth("u1"))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Cleared 2 cache entries"
    assert client.get("/recommended/properties").json()["cached"] is True
    assert client.get("/recommended/cache/stats", headers=_auth("u1")).json()["size"] == 1


def test_cache_stats_require_token(client):
    assert client.get("/recommended/cache/stats").status_code == 401
    stats = client.get("/recommended/cache/stats", headers=_auth("u1")).json()
    assert set(stats) == {"size", "hits", "misses", "hit_rate"}


def test_forged_token_is_anonymous(client):
    headers = {"Authorization": "Bearer not-a-real-token"}
    assert client.get("/recommended/properties", headers=headers).status_code == 200
    assert client.delete("/recommended/cache", headers=headers).status_code == 401


# ── Search ───────────────────────────────────────────────────────────────


def test_search_requires_type(client):
    resp = client.get("/search/paginated")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_search_rejects_unknown_sort(client):
    resp = client.get("/search/paginated?type=property&sort=cheapest")
    assert resp.status_code == 400
    assert "Sort must be one of" in resp.json()["message"]


def test_search_rejects_out_of_range_coordinates(client):
    resp = client.get("/search/paginated?type=property&lat=91&lng=0")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Latitude must be between -90 and 90"


def test_search_rejects_page_zero(client):
    assert client.get("/search/paginated?type=property&page=0").status_code == 400


def test_search_pagination_block(client):
    body = client.get("/search/paginated?type=property&page=2&limit=10&sort=price_asc").json()
    assert body["success"] is True
    assert len(body["data"]["results"]) == 10
    assert body["data"]["pagination"] == {
        "page": 2,
        "limit": 10,
        "total": 30,
        "hasMore": True,
        "totalPages": 3,
        "sort": "price_asc",
    }


def test_search_limit_is_clamped(client):
    body = client.get("/search/paginated?type=vehicle&limit=500").json()
    assert body["data"]["pagination"]["limit"] == 100
    assert body["data"]["pagination"]["total"] == 24


def test_search_exclude_and_nearest(client):
    body = client.get(
        "/search/paginated?type=property&exclude=apt-0,apt-1&sort=nearest&lat=18.52&lng=73.85"
    ).json()
    ids = [r["id"] for r in body["data"]["results"]]
    assert "apt-0" not in ids and "apt-1" not in ids
    assert body["data"]["pagination"]["total"] == 28
    assert body["data"]["results"][0]["distance"] == 0.0


def test_search_failure_is_500(client):
    with patch.object(RankedSearchEngine, "search", side_effect=RuntimeError("boom")):
        resp = client.get("/search/paginated?type=property")
    assert resp.status_code == 500
    assert resp.json()["message"] == "Failed to search listings"


def test_search_relevance_puts_booked_first(client):
    body = client.get("/search/paginated?type=property", headers=_auth("u1")).json()
    assert body["data"]["results"][0]["id"] == "apt-11"


# ── Nearby ───────────────────────────────────────────────────────────────


def test_nearby_with_explicit_coordinates(client):
    body = client.get("/nearby?latitude=18.52&longitude=73.85").json()
    data = body["data"]
    assert data["location"]["coordinateSource"] == "query_params"
    assert data["location"]["searchRadius"] == 10.0
    assert data["total"] == {"properties": 10, "vehicles": 24, "all": 34}
    assert all(r["distanceUnit"] == "km" for r in data["vehicles"])
    assert data["properties"][0]["distance"] == 0.0


def test_nearby_falls_back_to_ip_location(client):
    body = client.get("/nearby?type=properties").json()
    location = body["data"]["location"]
    assert location["coordinateSource"] == "ip_geolocation_fallback"
    assert location["detectedCity"] == "Pune"
    assert body["data"]["vehicles"] == []
    assert body["data"]["total"]["properties"] == 10


def test_nearby_rejects_half_coordinates(client):
    resp = client.get("/nearby?latitude=18.52")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Latitude and longitude are required"


def test_nearby_rejects_unknown_type(client):
    assert client.get("/nearby?type=boats&latitude=18.52&longitude=73.85").status_code == 400


def test_nearby_geolocation_failure(client):
    failing = _geolocation({"status": "fail", "message": "private range"})
    app.dependency_overrides[get_geolocation_client] = lambda: failing
    resp = client.get("/nearby")
    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert "provide coordinates manually" in resp.json()["message"]


def test_nearby_city_filter(client):
    body = client.get("/nearby?latitude=18.52&longitude=73.85&city=Mumbai").json()
    assert body["data"]["total"]["all"] == 0
    assert body["data"]["location"]["city"] == "Mumbai"


def test_nearby_coordinates_endpoint(client):
    body = client.get("/nearby/coordinates").json()
    assert body["data"]["latitude"] == 18.52
    assert body["data"]["source"] == "ip_geolocation_fallback"
    explicit = client.get("/nearby/coordinates?latitude=1&longitude=2").json()
    assert explicit["data"] == {"latitude": 1.0, "longitude": 2.0, "source": "query_params"}


def test_nearby_single_kind(client):
    body = client.get("/nearby/vehicles?latitude=18.52&longitude=73.85&maxDistance=2").json()
    assert body["data"]["total"] == 24
    assert len(body["data"]["vehicles"]) == 24
    assert body["data"]["location"]["searchRadius"] == 2.0


# ── Featured ─────────────────────────────────────────────────────────────


def test_featured_properties(client):
    body = client.get("/featured?type=properties&limit=3").json()
    results = body["data"]["properties"]
    assert len(results) == 3
    assert all(r["isFeatured"] for r in results)
    assert body["data"]["total"]["vehicles"] == 0


def test_featured_store_down_is_500(client, store):
    with patch.object(store, "find_featured", side_effect=ConnectionError("down")):
        resp = client.get("/featured")
    assert resp.status_code == 500
    assert resp.json()["message"] == "Failed to fetch featured listings"


# ── Visit history ────────────────────────────────────────────────────────


def test_visit_requires_token(client):
    assert client.post("/visited/properties/apt-1").status_code == 401
    assert client.get("/visited/properties").status_code == 401


def test_record_and_list_visits(client):
    resp = client.post("/visited/properties/apt-1", headers=_auth("u1"))
    assert resp.status_code == 200
    assert resp.json()["visitedCount"] == 5

    body = client.get("/visited/properties", headers=_auth("u1")).json()
    # gone-7 no longer exists and is left out.
    assert body["total"] == 4
    assert body["results"][0]["property"]["id"] == "apt-1"
    assert "visitedAt" in body["results"][0]


def test_revisit_moves_item_to_front(client):
    client.post("/visited/properties/apt-9", headers=_auth("u1"))
    body = client.get("/visited/properties", headers=_auth("u1")).json()
    ids = [r["property"]["id"] for r in body["results"]]
    assert ids == ["apt-9", "house-5", "apt-3"]


def test_visit_unknown_item_or_user(client):
    resp = client.post("/visited/vehicles/nope", headers=_auth("u1"))
    assert resp.status_code == 404
    assert resp.json()["message"] == "Vehicle not found"
    resp = client.post("/visited/vehicles/car-1", headers=_auth("ghost"))
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


def test_visit_invalidates_recommendations(client):
    client.get("/recommended/properties", headers=_auth("u1"))
    assert client.get("/recommended/properties", headers=_auth("u1")).json()["cached"] is True
    client.post("/visited/properties/apt-7", headers=_auth("u1"))
    body = client.get("/recommended/properties", headers=_auth("u1")).json()
    assert body["cached"] is False
    # apt-7 is not a favorite, so it leads the visited stage.
    assert [r["id"] for r in body["results"]][3] == "apt-7"


def test_clear_visited(client):
    resp = client.delete("/visited/properties", headers=_auth("u1"))
    assert resp.status_code == 200
    assert client.get("/visited/properties", headers=_auth("u1")).json()["total"] == 0
