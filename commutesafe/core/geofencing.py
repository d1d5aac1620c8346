import math
from typing import Tuple, Dict, Any
from commutesafe.config import settings
from commutesafe.models.location import GeofenceStatus

EARTH_RADIUS_M = 6371000

Point = Tuple[float, float]

def haversine_distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points using the Haversine formula
    Returns distance in meters
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c

def is_inside(point: Point, center: Point, radius_meters: float) -> bool:
    """Circular geofence check. A point exactly on the boundary is inside."""
    distance = haversine_distance_meters(point[0], point[1], center[0], center[1])
    return distance <= radius_meters

def campus_center() -> Point:
    return (settings.CAMPUS_CENTER_LAT, settings.CAMPUS_CENTER_LNG)

def is_within_campus(latitude: float, longitude: float) -> bool:
    return is_inside((latitude, longitude), campus_center(), settings.GEOFENCE_RADIUS_M)

def geofence_status(latitude: float, longitude: float) -> GeofenceStatus:
    """
    Inside/outside status for the campus geofence.
    Route guidance to campus is only offered from outside.
    """
    center_lat, center_lng = campus_center()
    distance = haversine_distance_meters(latitude, longitude, center_lat, center_lng)
    inside = distance <= settings.GEOFENCE_RADIUS_M

    return GeofenceStatus(
        inside=inside,
        distance_m=round(distance, 1),
        radius_m=settings.GEOFENCE_RADIUS_M,
        show_route=not inside
    )

def validate_coordinates(latitude: float, longitude: float) -> Dict[str, Any]:
    """
    Coordinate validation
    Returns validation result with details
    """
    result = {
        "valid": False,
        "within_campus": False,
        "distance_from_center": None,
        "errors": []
    }

    # Basic coordinate validation
    if not (-90 <= latitude <= 90):
        result["errors"].append("Invalid latitude: must be between -90 and 90")

    if not (-180 <= longitude <= 180):
        result["errors"].append("Invalid longitude: must be between -180 and 180")

    if result["errors"]:
        return result

    center_lat, center_lng = campus_center()
    result["valid"] = True
    result["within_campus"] = is_within_campus(latitude, longitude)
    result["distance_from_center"] = haversine_distance_meters(
        latitude, longitude, center_lat, center_lng
    )

    return result
