from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from pydantic import TypeAdapter

from ..errors import NotFoundError
from ..geo.cities import city_equals
from ..geo.distance import haversine_km_many
from ..visited.history import push_visit
from .models import KINDS, CandidateItem, Kind, UserProfile, normalize_category
from .repository import CandidateQuery

logger = logging.getLogger(__name__)

_DEFAULT_SEED = Path(__file__).resolve().parent.parent / "data" / "seed_listings.json"

_ITEMS_ADAPTER = TypeAdapter(list[CandidateItem])

_store: InMemoryCandidateStore | None = None


def _haystack(item: Any) -> str:
    parts = [
        item.display_name,
        item.description,
        item.city,
        item.state,
        item.address,
    ]
    return " ".join(p for p in parts if p).lower()


def _timestamp(value: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts


def _frame(items: list[Any]) -> pd.DataFrame:
    rows = []
    for item in items:
        coords = item.coordinates
        rows.append({
            "id": item.id,
            "listed": item.is_listed,
            "featured": item.featured,
            "category_lower": item.category_value.lower(),
            "city": item.city,
            "lat": coords.lat if coords else np.nan,
            "lng": coords.lng if coords else np.nan,
            "created_at": _timestamp(item.created_at),
            "haystack": _haystack(item),
        })
    columns = [
        "id", "listed", "featured", "category_lower", "city", "lat", "lng", "created_at", "haystack",
    ]
    return pd.DataFrame(rows, columns=columns)


class InMemoryCandidateStore:
    """``CandidateRepository`` over in-process pandas frames.

    Row order is insertion order, which is the store's natural order for
    text search. Proximity results come back nearest first.
    """

    def __init__(
        self,
        items: list[Any],
        profiles: list[UserProfile] | None = None,
        seed: int | None = None,
    ) -> None:
        self._items: dict[Kind, dict[str, Any]] = {k: {} for k in KINDS}
        for item in items:
            self._items[item.kind][item.id] = item
        self._frames: dict[Kind, pd.DataFrame] = {
            k: _frame(list(self._items[k].values())) for k in KINDS
        }
        self._profiles: dict[str, UserProfile] = {p.id: p for p in profiles or []}
        self._rng = np.random.default_rng(seed)

    @classmethod
    def from_records(cls, data: dict[str, Any], seed: int | None = None) -> InMemoryCandidateStore:
        raw_items = [
            *({"kind": "property", **r} for r in data.get("properties", [])),
            *({"kind": "vehicle", **r} for r in data.get("vehicles", [])),
        ]
        items = _ITEMS_ADAPTER.validate_python(raw_items)
        profiles = [UserProfile.model_validate(u) for u in data.get("users", [])]
        return cls(items, profiles, seed=seed)

    @classmethod
    def from_json(cls, path: Path) -> InMemoryCandidateStore:
        with open(path, encoding="utf-8") as fh:
            return cls.from_records(json.load(fh))

    def count(self, kind: Kind) -> int:
        return len(self._items[kind])

    # ── Listings ──────────────────────────────────────────────────────

    def _mask(self, query: CandidateQuery) -> pd.Series:
        df = self._frames[query.kind]
        mask = df["listed"].astype(bool)
        if query.exclude_ids:
            mask = mask & ~df["id"].isin(query.exclude_ids)
        category = normalize_category(query.category)
        if category:
            mask = mask & (df["category_lower"] == category)
        if query.text and query.text.strip():
            needle = query.text.strip().lower()
            mask = mask & df["haystack"].str.contains(needle, regex=False, na=False)
        return mask

    def _resolve(self, kind: Kind, ids: list[str]) -> list[Any]:
        table = self._items[kind]
        return [table[i] for i in ids if i in table]

    async def find_by_id(self, kind: Kind, item_id: str) -> Any | None:
        return self._items[kind].get(item_id)

    async def find_by_ids(self, kind: Kind, ids: list[str]) -> list[Any]:
        return self._resolve(kind, list(ids))

    async def find_featured(self, kind: Kind, limit: int) -> list[Any]:
        df = self._frames[kind]
        featured = df.loc[df["listed"].astype(bool) & df["featured"].astype(bool)]
        newest = featured.sort_values("created_at", ascending=False, kind="stable").head(limit)
        return self._resolve(kind, newest["id"].tolist())

    async def find_near(
        self,
        kind: Kind,
        lat: float,
        lng: float,
        max_distance_m: float,
        limit: int,
        city: str | None = None,
    ) -> list[Any]:
        df = self._frames[kind]
        mask = df["listed"].astype(bool) & df["lat"].notna() & df["lng"].notna()
        if city:
            mask = mask & df["city"].map(lambda c: city_equals(c, city)).astype(bool)
        located = df.loc[mask].copy()
        if located.empty:
            return []
        located["_distance_m"] = haversine_km_many(
            lat, lng, located["lat"].to_numpy(), located["lng"].to_numpy()
        ) * 1000.0
        within = located.loc[located["_distance_m"] <= max_distance_m]
        nearest = within.sort_values("_distance_m", kind="stable").head(limit)
        return self._resolve(kind, nearest["id"].tolist())

    async def text_search(self, query: CandidateQuery, limit: int) -> list[Any]:
        df = self._frames[query.kind]
        matched = df.loc[self._mask(query)].head(limit)
        return self._resolve(query.kind, matched["id"].tolist())

    async def count_matching(self, query: CandidateQuery) -> int:
        return int(self._mask(query).sum())

    async def sample(self, query: CandidateQuery, size: int) -> list[Any]:
        if size <= 0:
            return []
        df = self._frames[query.kind]
        matched = df.loc[self._mask(query)]
        if matched.empty:
            return []
        picked = matched.sample(n=min(size, len(matched)), random_state=self._rng)
        return self._resolve(query.kind, picked["id"].tolist())

    # ── Users ─────────────────────────────────────────────────────────

    async def get_profile(self, user_id: str) -> UserProfile | None:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def record_visit(
        self,
        user_id: str,
        kind: Kind,
        item_id: str,
        visited_at: datetime,
    ) -> list[str]:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        # No await between read and write, so the update is atomic on the loop.
        if kind == "property":
            profile.visited_properties = push_visit(profile.visited_properties, item_id, visited_at)
        else:
            profile.visited_vehicles = push_visit(profile.visited_vehicles, item_id, visited_at)
        return [e.item_id for e in profile.visited(kind)]

    async def clear_visited(self, user_id: str, kind: Kind) -> None:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        if kind == "property":
            profile.visited_properties = []
        else:
            profile.visited_vehicles = []


def get_repository() -> InMemoryCandidateStore:
    """Return the process-wide store, loading the seed file on first call."""
    global _store
    if _store is None:
        path = Path(os.getenv("RENTALLY_SEED_PATH", str(_DEFAULT_SEED)))
        _store = InMemoryCandidateStore.from_json(path)
        logger.info(
            "Loaded candidate store from %s (%d properties, %d vehicles)",
            path,
            _store.count("property"),
            _store.count("vehicle"),
        )
    return _store
