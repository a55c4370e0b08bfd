from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from ..catalog.models import CandidateItem, Kind
from ..catalog.repository import CandidateRepository
from ..geo.cities import city_equals
from ..geo.coordinates import parse_coordinates
from ..geo.distance import haversine_km
from .config import DEFAULT_NEARBY_CONFIG, NearbyConfig
from .geolocation import GeolocationClient, clean_ip, client_ip, is_local_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLocation:
    latitude: float
    longitude: float
    source: str
    city: str | None = None
    region: str | None = None
    country: str | None = None
    ip: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class NearbyHit:
    item: CandidateItem
    distance_km: float


class NearbyLocator:
    def __init__(
        self,
        repository: CandidateRepository,
        geolocation: GeolocationClient,
        config: NearbyConfig = DEFAULT_NEARBY_CONFIG,
    ) -> None:
        self._repo = repository
        self._geo = geolocation
        self._config = config

    async def resolve_coordinates(
        self,
        latitude: str | float | None,
        longitude: str | float | None,
        headers: Mapping[str, str] | None = None,
        peer: str | None = None,
    ) -> ResolvedLocation:
        """Explicit coordinates when given, otherwise the caller's IP location.

        Bad explicit coordinates raise ``ValidationError``; a failed IP lookup
        raises ``CoordinatesUnavailable``.
        """
        explicit = parse_coordinates(latitude, longitude)
        if explicit is not None:
            return ResolvedLocation(latitude=explicit[0], longitude=explicit[1], source="query_params")

        logger.info("Coordinates not provided, falling back to IP geolocation")
        ip = clean_ip(client_ip(headers or {}, peer))
        local = is_local_address(ip)
        if local:
            logger.info("Local address %r detected, letting the geolocation service use its own", ip)
        payload = await self._geo.lookup(None if local else ip)
        return ResolvedLocation(
            latitude=float(payload["lat"]),
            longitude=float(payload["lon"]),
            city=payload.get("city"),
            region=payload.get("regionName"),
            country=payload.get("country"),
            ip=payload.get("query"),
            source="ip_geolocation_fallback" if local else "ip_geolocation",
        )

    def radius_km(self, raw: str | float | None) -> float:
        """Requested radius, defaulted and capped."""
        try:
            value = float(raw) if raw is not None and str(raw).strip() else 0.0
        except ValueError:
            value = 0.0
        if not value > 0:
            value = self._config.default_radius_km
        return min(value, self._config.max_radius_km)

    async def find_nearby(
        self,
        lat: float,
        lng: float,
        kind: Kind,
        max_distance_m: float,
        city: str | None = None,
    ) -> list[NearbyHit]:
        """Listings within ``max_distance_m``, in the store's proximity order."""
        limit = self._config.limit_for(kind)
        items = await self._repo.find_near(kind, lat, lng, max_distance_m, limit, city=city)
        max_km = max_distance_m / 1000.0

        hits = []
        for item in items:
            if item.coordinates is None:
                continue
            distance = round(haversine_km(lat, lng, item.coordinates.lat, item.coordinates.lng), 2)
            if distance > max_km:
                continue
            if city and not city_equals(item.city, city):
                continue
            hits.append(NearbyHit(item=item, distance_km=distance))

        if self._config.debug:
            logger.info(
                "[nearby] %s: store returned %d, kept %d (radius=%.1fkm city=%s)",
                kind, len(items), len(hits), max_km, city,
            )
        return hits

    async def find_many(
        self,
        lat: float,
        lng: float,
        kinds: tuple[Kind, ...],
        max_distance_m: float,
        city: str | None = None,
    ) -> dict[Kind, list[NearbyHit]]:
        """Run ``find_nearby`` for each kind concurrently; any failure fails the whole call."""
        results = await asyncio.gather(
            *(self.find_nearby(lat, lng, kind, max_distance_m, city) for kind in kinds)
        )
        return dict(zip(kinds, results))
