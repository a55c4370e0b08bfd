from __future__ import annotations

import math

from ..errors import ValidationError


def _parse(raw: str | float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates") from None
    if math.isnan(value) or math.isinf(value):
        raise ValidationError("Invalid coordinates")
    return value


def parse_coordinates(
    latitude: str | float | None,
    longitude: str | float | None,
) -> tuple[float, float] | None:
    """Validate a latitude/longitude pair taken from a request.

    Returns ``None`` when neither value is given. Raises ``ValidationError``
    when only one is given, either is non-numeric, or either is out of range.
    """
    lat_missing = latitude is None or (isinstance(latitude, str) and not latitude.strip())
    lng_missing = longitude is None or (isinstance(longitude, str) and not longitude.strip())
    if lat_missing and lng_missing:
        return None
    if lat_missing or lng_missing:
        raise ValidationError("Latitude and longitude are required")

    lat = _parse(latitude)
    lng = _parse(longitude)
    if not -90.0 <= lat <= 90.0:
        raise ValidationError("Latitude must be between -90 and 90")
    if not -180.0 <= lng <= 180.0:
        raise ValidationError("Longitude must be between -180 and 180")
    return lat, lng
