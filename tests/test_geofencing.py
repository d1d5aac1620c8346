import pytest

from commutesafe.config import settings
from commutesafe.core.geofencing import (
    campus_center,
    geofence_status,
    haversine_distance_meters,
    is_inside,
    is_within_campus,
    validate_coordinates,
)

def test_distance_to_self_is_zero():
    assert haversine_distance_meters(14.7198, 121.0449, 14.7198, 121.0449) == 0

def test_one_degree_of_latitude():
    assert haversine_distance_meters(0, 0, 1, 0) == pytest.approx(111194.93, abs=1)

def test_distance_is_symmetric():
    there = haversine_distance_meters(14.7198, 121.0449, 14.6507, 121.0498)
    back = haversine_distance_meters(14.6507, 121.0498, 14.7198, 121.0449)
    assert there == pytest.approx(back)

def test_boundary_point_is_inside():
    center = (14.7198, 121.0449)
    point = (14.7248, 121.0449)
    distance = haversine_distance_meters(*point, *center)

    assert is_inside(point, center, distance)
    assert not is_inside(point, center, distance - 0.01)

def test_campus_geofence():
    assert is_within_campus(*campus_center())
    # Quezon Memorial Circle, several km south
    assert not is_within_campus(14.6516, 121.0493)

def test_route_guidance_only_from_outside():
    inside = geofence_status(*campus_center())
    outside = geofence_status(14.6516, 121.0493)

    assert inside.inside and not inside.show_route
    assert inside.distance_m == 0
    assert not outside.inside and outside.show_route
    assert outside.radius_m == settings.GEOFENCE_RADIUS_M

def test_validate_coordinates():
    invalid = validate_coordinates(95, 200)
    assert not invalid["valid"]
    assert len(invalid["errors"]) == 2

    valid = validate_coordinates(*campus_center())
    assert valid["valid"] and valid["within_campus"]
