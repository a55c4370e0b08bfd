"""
Personalised recommendation cascade.

Sources, in order, until the quota is met:
- Favorites: the user's saved items, featured first.
- Visited: recently viewed items, most recent first.
- Random fill: listed items not yet chosen, filtered by category.

Each stage has its own failure policy. Favorites and visited degrade to an
empty contribution; anything else failing abandons the cascade and the
engine answers with random items flagged as a fallback.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable

from ..catalog.models import CandidateItem, Kind, UserProfile, matches_category, normalize_category
from ..catalog.repository import CandidateQuery, CandidateRepository
from ..errors import UpstreamUnavailable
from .cache import ResultCache, make_key
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .dedup import DeduplicationTracker

logger = logging.getLogger(__name__)


@dataclass
class RecommendationResult:
    items: list[CandidateItem]
    cached: bool = False
    fallback: bool = False


class RecommendationEngine:
    def __init__(
        self,
        repository: CandidateRepository,
        cache: ResultCache,
        config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
    ) -> None:
        self._repo = repository
        self._cache = cache
        self._config = config

    async def recommend(
        self,
        user_id: str | None,
        category: str | None,
        kind: Kind,
    ) -> RecommendationResult:
        category = (category or "all").strip() or "all"
        key = make_key(user_id, kind, category)

        cached = self._cache.get(key)
        if cached is not None:
            logger.info("Recommendation cache hit for %s", key)
            return RecommendationResult(items=list(cached), cached=True)
        logger.info("Recommendation cache miss for %s", key)

        try:
            items = await self._cache.single_flight(
                key, lambda: self._cascade(user_id, kind, category)
            )
        except Exception:
            logger.warning(
                "Recommendation cascade failed for %s, falling back to random items",
                key,
                exc_info=True,
            )
            return RecommendationResult(items=await self._fallback(kind, category), fallback=True)

        return RecommendationResult(items=list(items))

    # ── Cascade ───────────────────────────────────────────────────────

    async def _cascade(self, user_id: str | None, kind: Kind, category: str) -> list[CandidateItem]:
        quota = self._config.quota
        tracker = DeduplicationTracker()
        collected: list[CandidateItem] = []

        profile = await self._load_profile(user_id)
        if profile is not None:
            favorites = await self._degrading("favorites", self._favorites(profile, kind, tracker))
            collected.extend(favorites)

            if len(collected) < quota:
                visited = await self._degrading("visited", self._visited(profile, kind, tracker))
                collected.extend(visited)

        if len(collected) < quota:
            random_items = await self._random_fill(kind, category, tracker, quota - len(collected))
            collected.extend(random_items)

        result = self._finalize(collected, category)
        logger.info(
            "Built %d %s recommendations for user=%s category=%s",
            len(result),
            kind,
            user_id or "anonymous",
            category,
        )
        return result

    async def _load_profile(self, user_id: str | None) -> UserProfile | None:
        if not user_id:
            return None
        try:
            profile = await self._repo.get_profile(user_id)
        except Exception:
            logger.warning("Could not load profile for %s, continuing without it", user_id, exc_info=True)
            return None
        if profile is None:
            logger.info("User %s not found, recommending as anonymous", user_id)
        return profile

    async def _degrading(self, stage: str, work: Awaitable[list[CandidateItem]]) -> list[CandidateItem]:
        try:
            items = await work
        except Exception:
            logger.warning("Recommendation stage %r failed, skipping it", stage, exc_info=True)
            return []
        logger.debug("Stage %r contributed %d items", stage, len(items))
        return items

    async def _favorites(
        self,
        profile: UserProfile,
        kind: Kind,
        tracker: DeduplicationTracker,
    ) -> list[CandidateItem]:
        ids = profile.favorites(kind)
        if not ids:
            return []
        items = await self._repo.find_by_ids(kind, ids)
        featured_first = sorted(items, key=lambda item: not item.featured)
        return list(tracker.admit(featured_first))

    async def _visited(
        self,
        profile: UserProfile,
        kind: Kind,
        tracker: DeduplicationTracker,
    ) -> list[CandidateItem]:
        entries = sorted(profile.visited(kind), key=lambda e: e.visited_at, reverse=True)
        if not entries:
            return []
        # find_by_ids keeps order and drops records that no longer exist
        items = await self._repo.find_by_ids(kind, [e.item_id for e in entries])
        return list(tracker.admit(items))

    async def _random_fill(
        self,
        kind: Kind,
        category: str,
        tracker: DeduplicationTracker,
        needed: int,
    ) -> list[CandidateItem]:
        if needed <= 0:
            return []
        query = CandidateQuery(
            kind=kind,
            exclude_ids=tracker.consumed(),
            category=normalize_category(category),
        )
        items = await self._repo.sample(query, needed)
        return list(tracker.admit(items))

    def _finalize(self, items: list[CandidateItem], category: str) -> list[CandidateItem]:
        if normalize_category(category) is None:
            return items[: self._config.quota]
        matching = [item for item in items if matches_category(item, category)]
        return matching[: self._config.category_limit]

    async def _fallback(self, kind: Kind, category: str) -> list[CandidateItem]:
        query = CandidateQuery(kind=kind, category=normalize_category(category))
        try:
            items = await self._repo.sample(query, self._config.quota)
        except Exception as exc:
            logger.error("Random fallback failed, candidate store unreachable", exc_info=True)
            raise UpstreamUnavailable("Failed to fetch recommendations") from exc
        return self._finalize(items, category)

    def invalidate_user(self, user_id: str) -> int:
        return self._cache.invalidate_user(user_id)
