from .cities import CITY_ALIASES, city_equals
from .distance import EARTH_RADIUS_KM, haversine_km, haversine_km_many

__all__ = ["CITY_ALIASES", "EARTH_RADIUS_KM", "city_equals", "haversine_km", "haversine_km_many"]
