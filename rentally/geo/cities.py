from __future__ import annotations


CITY_ALIASES: dict[str, tuple[str, ...]] = {
    "delhi": ("new delhi", "delhi ncr"),
    "new delhi": ("delhi", "delhi ncr"),
    "mumbai": ("bombay",),
    "bombay": ("mumbai",),
    "bengaluru": ("bangalore",),
    "bangalore": ("bengaluru",),
    "kolkata": ("calcutta",),
    "calcutta": ("kolkata",),
    "gurugram": ("gurgaon",),
    "gurgaon": ("gurugram",),
}


def _normalize_city(value: str | None) -> str:
    return (value or "").strip().lower()


def city_equals(a: str | None, b: str | None) -> bool:
    na, nb = _normalize_city(a), _normalize_city(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    return nb in CITY_ALIASES.get(na, ()) or na in CITY_ALIASES.get(nb, ())
