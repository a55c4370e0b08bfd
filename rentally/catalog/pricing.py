from __future__ import annotations

from dataclasses import dataclass

from .models import Property, Vehicle


@dataclass(frozen=True)
class ResolvedPrice:
    amount: float
    unit: str  # "month", "day" or "hour"


# First populated, positive field wins.
_PROPERTY_CHAIN = (("per_month", "month"), ("per_day", "day"))
_VEHICLE_CHAIN = (("per_day", "day"), ("per_hour", "hour"))


def resolve_price(item: Property | Vehicle) -> ResolvedPrice | None:
    """Return the headline price for an item, or ``None`` when it has none."""
    chain = _PROPERTY_CHAIN if item.kind == "property" else _VEHICLE_CHAIN
    for field, unit in chain:
        value = getattr(item.price, field, None)
        if value is not None and value > 0:
            return ResolvedPrice(amount=float(value), unit=unit)
    return None


def resolve_rating(item: Property | Vehicle) -> float:
    """Average rating; unrated items score 0 so they sort after rated ones."""
    if item.rating.count <= 0:
        return 0.0
    return float(item.rating.avg)
