"""
Location helpers.
Distances use the haversine formula.
"""

import math

from ..core.errors import InvalidLocation
from ..schemas.quests import Coordinates

EARTH_RADIUS_METERS = 6371000


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points.

    Args:
        lat1: latitude of the first point
        lon1: longitude of the first point
        lat2: latitude of the second point
        lon2: longitude of the second point

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def is_within_radius(
    user_lat: float, user_lon: float, place_lat: float, place_lon: float, radius_meters: float = 1000
) -> bool:
    distance = calculate_distance(user_lat, user_lon, place_lat, place_lon)
    return distance <= radius_meters


def has_arrived(user: Coordinates, destination: Coordinates, threshold_meters: float = 50) -> bool:
    """True when the user is within `threshold_meters` of the destination."""
    return is_within_radius(
        user.latitude, user.longitude, destination.latitude, destination.longitude, threshold_meters
    )


def validate_location(latitude: float | str, longitude: float | str) -> Coordinates:
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError) as exc:
        raise InvalidLocation("Invalid location coordinates") from exc

    if math.isnan(lat) or math.isnan(lng):
        raise InvalidLocation("Invalid location coordinates")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise InvalidLocation("Location coordinates out of valid range")

    return Coordinates(latitude=lat, longitude=lng)


def validate_step_sequence(current_step_number: int, step_number: int) -> bool:
    # Step N may be completed only from step N-1
    return step_number == current_step_number + 1
