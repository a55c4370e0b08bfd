from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from .models import CandidateItem, Kind, UserProfile


@dataclass(frozen=True)
class CandidateQuery:
    """Filter handed to the store.

    Only listed (available and active) items ever match. ``text`` is a
    case-insensitive substring over title/name/description/city/state/address.
    """

    kind: Kind
    text: str | None = None
    exclude_ids: frozenset[str] = field(default_factory=frozenset)
    category: str | None = None


class CandidateRepository(Protocol):
    """Read access to listings and user profiles, plus the visit log."""

    async def find_by_id(self, kind: Kind, item_id: str) -> CandidateItem | None: ...

    async def find_by_ids(self, kind: Kind, ids: list[str]) -> list[CandidateItem]:
        """Items for ``ids`` in the given order; unknown ids are dropped."""
        ...

    async def find_featured(self, kind: Kind, limit: int) -> list[CandidateItem]: ...

    async def find_near(
        self,
        kind: Kind,
        lat: float,
        lng: float,
        max_distance_m: float,
        limit: int,
        city: str | None = None,
    ) -> list[CandidateItem]:
        """Listed items within ``max_distance_m``, nearest first.

        ``city`` (alias-aware) narrows the candidates before ``limit`` applies.
        """
        ...

    async def text_search(self, query: CandidateQuery, limit: int) -> list[CandidateItem]: ...

    async def count_matching(self, query: CandidateQuery) -> int: ...

    async def sample(self, query: CandidateQuery, size: int) -> list[CandidateItem]:
        """Up to ``size`` random items matching ``query``."""
        ...

    async def get_profile(self, user_id: str) -> UserProfile | None: ...

    async def record_visit(
        self,
        user_id: str,
        kind: Kind,
        item_id: str,
        visited_at: datetime,
    ) -> list[str]:
        """Push ``item_id`` onto the user's visit log; return the new id order."""
        ...

    async def clear_visited(self, user_id: str, kind: Kind) -> None: ...
