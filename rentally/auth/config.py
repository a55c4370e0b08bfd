from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class AuthConfig:
    secret_key: str = os.getenv("RENTALLY_SECRET_KEY", "rentally-secret-change-in-production")
    salt: str = "rentally-auth"
    max_age_seconds: int = 7 * 24 * 60 * 60
    cookie_name: str = "token"


DEFAULT_AUTH_CONFIG = AuthConfig()
