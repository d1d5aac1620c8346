from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Any, List, Optional
import uuid

from commutesafe.database import SessionDep
from commutesafe.models.profile import Profile
from commutesafe.models.route import (
    CommuteRoute, Place, RouteHistoryCreate, RouteHistoryRead, VehicleType
)
from commutesafe.api.auth import get_current_profile
from commutesafe.core.commute import (
    delete_route_history, format_step_distance, get_route, get_route_history,
    list_routes, save_route_history
)
from commutesafe.core.geofencing import campus_center
from commutesafe.utils.osm_services import geocoding_service, routing_service

router = APIRouter()

@router.get("/routes", response_model=List[CommuteRoute])
async def get_routes(
    vehicle_type: Optional[VehicleType] = None,
    max_fare: Optional[int] = Query(default=None, ge=0),
    sort_by: Optional[str] = Query(default=None, pattern="^(fare|duration)$")
):
    return list_routes(vehicle_type=vehicle_type, max_fare=max_fare, sort_by=sort_by)

@router.get("/routes/{route_id}", response_model=CommuteRoute)
async def get_route_details(route_id: str):
    route = get_route(route_id)
    if route is None:
        raise HTTPException(status_code=404, detail="Route not found")
    return route

@router.get("/directions")
async def get_directions(
    origin_lat: float = Query(ge=-90, le=90),
    origin_lng: float = Query(ge=-180, le=180),
    dest_lat: Optional[float] = Query(default=None, ge=-90, le=90),
    dest_lng: Optional[float] = Query(default=None, ge=-180, le=180)
) -> dict[str, Any]:
    """Driving directions, to campus unless a destination is given"""
    if dest_lat is None or dest_lng is None:
        destination = campus_center()
    else:
        destination = (dest_lat, dest_lng)

    summary = await routing_service.get_driving_route((origin_lat, origin_lng), destination)
    if summary is None:
        raise HTTPException(status_code=404, detail="No route found")

    return {
        "distance_km": summary.distance_km,
        "duration_minutes": summary.duration_minutes,
        "steps": [
            {
                "instruction": step.instruction,
                "distance": step.distance,
                "distance_text": format_step_distance(step.distance)
            }
            for step in summary.steps
        ],
        "geometry": summary.geometry
    }

@router.get("/places", response_model=List[Place])
async def search_places(q: str = Query(min_length=1)):
    return await geocoding_service.search(q)

@router.get("/places/reverse", response_model=Place)
async def reverse_geocode(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180)
):
    place = await geocoding_service.reverse(latitude, longitude)
    if place is None:
        raise HTTPException(status_code=400, detail="Location is outside the supported area")
    return place

@router.post("/history", response_model=RouteHistoryRead, status_code=201)
async def add_history(
    db: SessionDep,
    route: RouteHistoryCreate,
    current_profile: Profile = Depends(get_current_profile)
):
    return await save_route_history(db, current_profile.id, route)

@router.get("/history", response_model=List[RouteHistoryRead])
async def list_history(
    db: SessionDep,
    limit: int = Query(default=10, ge=1, le=100),
    current_profile: Profile = Depends(get_current_profile)
):
    return await get_route_history(db, current_profile.id, limit)

@router.delete("/history/{route_id}")
async def remove_history(
    db: SessionDep,
    route_id: uuid.UUID,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, str]:
    if not await delete_route_history(db, current_profile.id, route_id):
        raise HTTPException(status_code=404, detail="Route not found")
    return {"message": "Route removed from history"}
