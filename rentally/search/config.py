from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SearchConfig:
    default_page_size: int = 20
    max_page_size: int = 100
    # Upper bound on candidates scored per request.
    max_candidates: int = int(os.getenv("RENTALLY_SEARCH_MAX_CANDIDATES", "2000"))
    booked_weight: float = 1000.0
    favorite_weight: float = 500.0
    same_city_weight: float = 100.0
    featured_weight: float = 50.0
    tie_break_width: float = 10.0


DEFAULT_SEARCH_CONFIG = SearchConfig()
