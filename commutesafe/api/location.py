from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Any, Optional

from commutesafe.database import SessionDep
from commutesafe.models.location import (
    FriendBoard, GeofenceStatus, LocationRecord, LocationUpdateRequest, VisibleLocation
)
from commutesafe.models.profile import Profile
from commutesafe.api.auth import get_current_profile, raise_for_result
from commutesafe.core.friendship import get_friends
from commutesafe.core.geofencing import geofence_status
from commutesafe.core.presence import build_friend_board
from commutesafe.core.sharing import (
    fetch_visible_to, get_location_record, share_location_with,
    stop_sharing_with, update_own_location
)

router = APIRouter()

@router.post("/update")
async def update_location(
    db: SessionDep,
    location_data: LocationUpdateRequest,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, Any]:
    result = await update_own_location(
        db, current_profile.id, location_data.latitude, location_data.longitude
    )
    raise_for_result(result)

    return {
        "message": "Location updated successfully",
        "geofence": geofence_status(location_data.latitude, location_data.longitude)
    }

@router.get("/me", response_model=Optional[LocationRecord])
async def get_my_location(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
):
    return await get_location_record(db, current_profile.id)

@router.post("/share/{viewer_id}")
async def share_location(
    db: SessionDep,
    viewer_id: str,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, Any]:
    if await db.get(Profile, viewer_id) is None:
        raise HTTPException(status_code=404, detail="User not found")

    result = await share_location_with(db, current_profile.id, viewer_id)
    raise_for_result(result)
    return {"message": "Location shared", "changed": result.changed, "shared_with": result.shared_with}

@router.delete("/share/{viewer_id}")
async def stop_sharing(
    db: SessionDep,
    viewer_id: str,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, Any]:
    result = await stop_sharing_with(db, current_profile.id, viewer_id)
    raise_for_result(result)
    return {"message": "Stopped sharing location", "changed": result.changed, "shared_with": result.shared_with}

@router.get("/visible", response_model=List[VisibleLocation])
async def get_visible_locations(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
):
    return await fetch_visible_to(db, current_profile.id)

@router.get("/board", response_model=FriendBoard)
async def get_friend_board(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
):
    friends = await get_friends(db, current_profile.id)
    locations = await fetch_visible_to(db, current_profile.id)
    return build_friend_board(friends, locations)

@router.get("/geofence", response_model=GeofenceStatus)
async def get_geofence_status(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180)
):
    return geofence_status(latitude, longitude)
