"""Great-circle distance between two points on the Earth's surface."""

import math

from eventradar.schemas.event import Coordinates

# Mean Earth radius (IUGG), in kilometres.
EARTH_RADIUS_KM = 6371.0088


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance in kilometres.

    Args:
        lat1, lon1: First point in decimal degrees
        lat2, lon2: Second point in decimal degrees

    Returns:
        Non-negative distance in km; 0.0 for identical points
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2) - math.radians(lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    # Floating error can push `a` slightly outside [0, 1]
    a = min(1.0, max(0.0, a))
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_KM * c


def distance_between(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance between two Coordinates, in km."""
    return distance_km(a.latitude, a.longitude, b.latitude, b.longitude)
