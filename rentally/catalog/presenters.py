from __future__ import annotations

from typing import Any

from .models import Property, Vehicle
from .pricing import resolve_price, resolve_rating


def to_result(item: Property | Vehicle, distance_km: float | None = None) -> dict[str, Any]:
    """Render a listing in the uniform shape shared by search, recommendations and nearby."""
    price = resolve_price(item)
    media = item.media
    out: dict[str, Any] = {
        "id": item.id,
        "title": item.display_name,
        "price": price.amount if price else None,
        "priceUnit": price.unit if price else None,
        "currency": item.price.currency,
        "rating": resolve_rating(item),
        "reviewCount": item.rating.count,
        "imageUrl": media[0] if media else None,
        "images": list(media),
        "location": (
            {"latitude": item.coordinates.lat, "longitude": item.coordinates.lng}
            if item.coordinates
            else None
        ),
        "city": item.city,
        "state": item.state,
        "address": item.address,
        "category": item.category_value,
        "itemType": item.kind,
        "isFeatured": item.featured,
        "distance": round(distance_km, 2) if distance_km is not None else None,
        "createdAt": item.created_at.isoformat(),
    }
    if isinstance(item, Property):
        out.update({
            "description": item.description,
            "bedrooms": item.bedrooms,
            "bathrooms": item.bathrooms,
            "areaSqft": item.area_sqft,
            "furnished": item.furnished,
            "amenities": list(item.amenities),
        })
    else:
        out.update({
            "description": item.description,
            "make": item.make,
            "model": item.model,
            "year": item.year,
            "vehicleType": item.vehicle_type,
            "fuelType": item.fuel_type,
            "transmission": item.transmission,
            "seats": item.seats,
        })
    return out
