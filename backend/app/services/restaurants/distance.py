"""Great-circle distance between two coordinates."""
import math

from app.core.constants import EARTH_RADIUS_MILES


def distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in miles, rounded half-up to one decimal place."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return math.floor(EARTH_RADIUS_MILES * c * 10 + 0.5) / 10
