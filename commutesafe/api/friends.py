from fastapi import APIRouter, Depends
from typing import Any, List

from commutesafe.database import SessionDep
from commutesafe.models.friendship import AddFriendRequest, FriendEntry
from commutesafe.models.profile import Profile, ProfileRead
from commutesafe.api.auth import get_current_profile, raise_for_result
from commutesafe.core.friendship import add_friend_by_code, get_friends, remove_friend
from commutesafe.core.tracking_codes import find_by_tracking_code

router = APIRouter()

@router.post("/add-by-code")
async def add_friend(
    db: SessionDep,
    request: AddFriendRequest,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, Any]:
    result = await add_friend_by_code(db, current_profile.id, request.code)
    raise_for_result(result)

    return {
        "success": True,
        "friend": result.friend,
        "message": result.message
    }

@router.get("/", response_model=List[FriendEntry])
async def list_friends(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
):
    return await get_friends(db, current_profile.id)

@router.get("/lookup/{code}", response_model=ProfileRead)
async def lookup_code(
    db: SessionDep,
    code: str,
    current_profile: Profile = Depends(get_current_profile)
):
    result = await find_by_tracking_code(db, code)
    raise_for_result(result)
    return result.user

@router.delete("/{friend_id}")
async def delete_friend(
    db: SessionDep,
    friend_id: str,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, str]:
    # Visibility stays granted; DELETE /api/location/share/{id} revokes it
    result = await remove_friend(db, current_profile.id, friend_id)
    raise_for_result(result)
    return {"message": "Friend removed"}
