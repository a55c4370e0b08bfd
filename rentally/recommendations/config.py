from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class RecommendationConfig:
    quota: int = 20
    category_limit: int = 10
    cache_ttl_seconds: float = float(os.getenv("RENTALLY_RECOMMENDATION_TTL", "300"))


DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()
