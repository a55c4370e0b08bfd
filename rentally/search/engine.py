"""
Ranked, paginated listing search.

Steps per request:
- Match every listed item of the requested kind against the text filter.
- Attach resolved price, rating and distance to each candidate.
- Score candidates for relevance (booked > favorited > same city > featured,
  with a small random tie-break).
- Sort the whole set by the requested mode, then cut the requested page.
"""
from __future__ import annotations

import asyncio
import logging
import math
import random

from ..catalog.models import CandidateItem, Kind
from ..catalog.pricing import resolve_price, resolve_rating
from ..catalog.repository import CandidateQuery, CandidateRepository
from ..geo.distance import haversine_km
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .models import ScoredCandidate, SearchPage, SearchQuery, SortMode, UserContext

logger = logging.getLogger(__name__)


def _sort_key(mode: SortMode):
    if mode is SortMode.relevance:
        return lambda c: -c.score
    if mode is SortMode.price_asc:
        return lambda c: (c.price is None, c.price or 0.0)
    if mode is SortMode.price_desc:
        return lambda c: (c.price is None, -(c.price or 0.0))
    if mode is SortMode.rating:
        return lambda c: (-c.rating, -c.item.rating.count)
    return lambda c: (c.distance_km is None, c.distance_km or 0.0)


class RankedSearchEngine:
    def __init__(
        self,
        repository: CandidateRepository,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        rng: random.Random | None = None,
    ) -> None:
        self._repo = repository
        self._config = config
        self._rng = rng or random.Random()

    async def search(self, query: SearchQuery, user: UserContext | None = None) -> SearchPage:
        predicate = CandidateQuery(
            kind=query.kind,
            text=query.text,
            exclude_ids=frozenset(query.exclude_ids),
        )
        matching, items = await asyncio.gather(
            self._repo.count_matching(predicate),
            self._repo.text_search(predicate, self._config.max_candidates),
        )
        if matching > len(items):
            logger.warning(
                "Search for %s matched %d items, ranking only the first %d",
                query.kind,
                matching,
                len(items),
            )

        scored = [self._score(item, query, user) for item in items]
        ordered = self.rank(scored, query.sort)
        return self.paginate(ordered, query)

    def _score(
        self,
        item: CandidateItem,
        query: SearchQuery,
        user: UserContext | None,
    ) -> ScoredCandidate:
        price = resolve_price(item)
        distance = None
        if query.has_origin and item.coordinates is not None:
            distance = haversine_km(
                query.latitude, query.longitude, item.coordinates.lat, item.coordinates.lng
            )

        candidate = ScoredCandidate(
            item=item,
            price=price.amount if price else None,
            rating=resolve_rating(item),
            distance_km=distance,
        )
        if query.sort is SortMode.relevance:
            candidate.score = self.relevance(item, user)
        return candidate

    def relevance(self, item: CandidateItem, user: UserContext | None) -> float:
        cfg = self._config
        score = 0.0
        if user is not None:
            if item.id in user.booked_ids:
                score += cfg.booked_weight
            if item.id in user.favorite_ids:
                score += cfg.favorite_weight
            # Literal case-insensitive match, no alias or diacritic folding.
            if user.home_city and item.city and item.city.lower() == user.home_city.lower():
                score += cfg.same_city_weight
        if item.featured:
            score += cfg.featured_weight
        return score + self._rng.random() * cfg.tie_break_width

    @staticmethod
    def rank(candidates: list[ScoredCandidate], mode: SortMode) -> list[ScoredCandidate]:
        return sorted(candidates, key=_sort_key(mode))

    @staticmethod
    def paginate(ordered: list[ScoredCandidate], query: SearchQuery) -> SearchPage:
        total = len(ordered)
        offset = (query.page - 1) * query.page_size
        window = ordered[offset: offset + query.page_size]
        return SearchPage(
            items=window,
            total=total,
            has_more=offset + len(window) < total,
            page=query.page,
            page_size=query.page_size,
            total_pages=math.ceil(total / query.page_size) if total else 0,
            sort=query.sort,
        )


async def load_user_context(
    repository: CandidateRepository,
    user_id: str | None,
    kind: Kind,
) -> UserContext | None:
    """Personalisation signals for ``user_id``; ``None`` when unavailable."""
    if not user_id:
        return None
    try:
        profile = await repository.get_profile(user_id)
    except Exception:
        logger.warning("Could not load profile for %s, searching unpersonalised", user_id, exc_info=True)
        return None
    if profile is None:
        return None
    return UserContext(
        user_id=profile.id,
        favorite_ids=frozenset(profile.favorites(kind)),
        booked_ids=frozenset(profile.booked(kind)),
        home_city=profile.home_city,
    )
