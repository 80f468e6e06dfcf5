import math
from typing import Optional

EARTH_RADIUS_KM = 6371


def deg2rad(deg: float) -> float:
    return deg * (math.pi / 180)


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points (haversine), in km.
    Inputs are not validated; callers must reject missing coordinates first.
    """
    d_lat = deg2rad(lat2 - lat1)
    d_lon = deg2rad(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(deg2rad(lat1))
        * math.cos(deg2rad(lat2))
        * math.sin(d_lon / 2)
        * math.sin(d_lon / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(origin, destination) -> Optional[float]:
    """
    Distance between two Coordinates-like objects (with .lat/.lng), or None
    when either side or any component is missing.
    """
    if origin is None or destination is None:
        return None
    points = (origin.lat, origin.lng, destination.lat, destination.lng)
    if any(p is None or math.isnan(p) for p in points):
        return None
    return distance_km(*points)
