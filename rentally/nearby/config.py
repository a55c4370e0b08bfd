from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class NearbyConfig:
    default_radius_km: float = 10.0
    max_radius_km: float = 10.0
    property_limit: int = int(os.getenv("RENTALLY_NEARBY_PROPERTY_LIMIT", "10"))
    vehicle_limit: int = int(os.getenv("RENTALLY_NEARBY_VEHICLE_LIMIT", "50"))
    debug: bool = os.getenv("NEARBY_DEBUG") == "1"

    def limit_for(self, kind: str) -> int:
        return self.property_limit if kind == "property" else self.vehicle_limit


@dataclass(frozen=True)
class GeolocationConfig:
    base_url: str = os.getenv("RENTALLY_GEOLOCATION_URL", "http://ip-api.com")
    timeout: float = float(os.getenv("RENTALLY_GEOLOCATION_TIMEOUT", "10"))
    user_agent: str = "Mozilla/5.0"


DEFAULT_NEARBY_CONFIG = NearbyConfig()
DEFAULT_GEOLOCATION_CONFIG = GeolocationConfig()
