import math

EARTH_RADIUS_KM = 6371
KM_PER_MILE = 1.609344


def calculate_distance(lat1, lon1, lat2, lon2):
    """Great-circle (haversine) distance in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE
