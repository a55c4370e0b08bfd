from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RecommendedResponse(BaseModel):
    success: bool = True
    results: list[dict[str, Any]] = Field(default_factory=list)
    total: int
    cached: bool = False
    fallback: bool = False
    message: str | None = None


class CacheClearedResponse(BaseModel):
    success: bool = True
    message: str
