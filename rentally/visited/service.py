from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..catalog.models import CandidateItem, Kind, VisitedEntry
from ..catalog.repository import CandidateRepository
from ..errors import NotFoundError
from ..recommendations.cache import ResultCache
from .history import VISITED_CAPACITY

logger = logging.getLogger(__name__)


class VisitHistoryService:
    """Recently-viewed lists; the only state the discovery core writes."""

    def __init__(self, repository: CandidateRepository, cache: ResultCache) -> None:
        self._repo = repository
        self._cache = cache

    async def record(self, user_id: str, kind: Kind, item_id: str) -> int:
        item = await self._repo.find_by_id(kind, item_id)
        if item is None:
            raise NotFoundError(f"{kind.capitalize()} not found")
        order = await self._repo.record_visit(user_id, kind, item_id, datetime.now(timezone.utc))
        # Visit history feeds recommendations, so drop the stale ones.
        dropped = self._cache.invalidate_user(user_id)
        logger.info(
            "Recorded %s visit %s for %s (%d in history, %d cache entries dropped)",
            kind, item_id, user_id, len(order), dropped,
        )
        return len(order)

    async def list(
        self,
        user_id: str,
        kind: Kind,
        limit: int = VISITED_CAPACITY,
    ) -> list[tuple[CandidateItem, VisitedEntry]]:
        profile = await self._repo.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        entries = profile.visited(kind)
        items = await self._repo.find_by_ids(kind, [e.item_id for e in entries])
        by_id = {item.id: item for item in items}
        # Entries whose record has gone away are skipped.
        pairs = [(by_id[e.item_id], e) for e in entries if e.item_id in by_id]
        return pairs[:limit]

    async def clear(self, user_id: str, kind: Kind) -> None:
        await self._repo.clear_visited(user_id, kind)
        self._cache.invalidate_user(user_id)
