"""Great-circle distance between two coordinates.

Haversine over a spherical Earth. Distance is a proxy for delivery effort:
no road network is involved.
"""

import math

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the haversine distance in kilometres between two points.

    ``(0, 0)`` is treated like any other coordinate; use ``has_location`` to
    detect "no location" before calling.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def parse_coordinate(value) -> float:
    """Parse a latitude/longitude that may arrive as a decimal string.

    Empty, missing or malformed values become ``0.0``.
    """
    if value is None or value == "":
        return 0.0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(parsed) or math.isinf(parsed):
        return 0.0
    return parsed


def has_location(latitude, longitude) -> bool:
    """True when both coordinates parse to non-zero values."""
    return bool(parse_coordinate(latitude)) and bool(parse_coordinate(longitude))


def format_distance(km: float | None) -> str:
    """Render a distance for display, e.g. ``"5.2 km"`` or ``"N/A"``."""
    if km is None:
        return "N/A"
    return f"{round(km, 1)} km"
