import logging
from typing import List

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from commutesafe.core.errors import AddFriendResult, ErrorKind, FriendError, OperationResult
from commutesafe.core.sharing import share_location_with
from commutesafe.core.tracking_codes import find_by_tracking_code
from commutesafe.models.friendship import FriendEdge, FriendEntry, FriendshipStatus
from commutesafe.models.profile import Profile, ProfileRead

logger = logging.getLogger(__name__)

async def _edge_exists(db: AsyncSession, user_id: str, friend_id: str) -> bool:
    result = await db.execute(
        select(FriendEdge.id).where(
            FriendEdge.user_id == user_id,
            FriendEdge.friend_id == friend_id
        )
    )
    return result.first() is not None

async def _insert_edge(db: AsyncSession, user_id: str, friend_id: str) -> bool:
    """Insert one directed edge; False when the unique index says it exists"""
    db.add(FriendEdge(user_id=user_id, friend_id=friend_id, status=FriendshipStatus.ACTIVE))
    try:
        await db.commit()
        return True
    except IntegrityError:
        await db.rollback()
        return False

async def add_friend_by_code(db: AsyncSession, requester_id: str, code: str) -> AddFriendResult:
    """
    Start tracking the owner of a tracking code, and let them track you back.

    Both directed edges are ensured and both allow-lists are granted. A reverse
    edge left behind by an earlier partial failure is reused, not duplicated.
    """
    lookup = await find_by_tracking_code(db, code)
    if not lookup.success:
        if lookup.error_kind == ErrorKind.NOT_FOUND:
            return AddFriendResult.rejected(FriendError.CODE_NOT_FOUND, lookup.error)
        return AddFriendResult.rejected(FriendError.REMOTE_FAILURE, lookup.error)

    friend = lookup.user
    if friend.id == requester_id:
        return AddFriendResult.rejected(FriendError.SELF_ADD, "You cannot add yourself")

    try:
        if await _edge_exists(db, requester_id, friend.id):
            return AddFriendResult.rejected(
                FriendError.ALREADY_TRACKING, "You are already tracking this person"
            )

        if not await _insert_edge(db, requester_id, friend.id):
            return AddFriendResult.rejected(
                FriendError.ALREADY_TRACKING, "You are already tracking this person"
            )

        # Mutual: they track you too
        if not await _edge_exists(db, friend.id, requester_id):
            await _insert_edge(db, friend.id, requester_id)

    except SQLAlchemyError as e:
        logger.error(f"Error adding friend: {e}")
        await db.rollback()
        return AddFriendResult.rejected(FriendError.REMOTE_FAILURE, str(e))

    # Friend shares with requester, then requester shares with friend
    to_requester = await share_location_with(db, friend.id, requester_id)
    to_friend = await share_location_with(db, requester_id, friend.id)
    if not (to_requester.success and to_friend.success):
        logger.error(
            f"Friendship {requester_id} <-> {friend.id} created but sharing failed: "
            f"{to_requester.error or to_friend.error}"
        )

    return AddFriendResult.ok(
        friend=friend,
        message=f"Now tracking {friend.label}. They can also see your location."
    )

async def get_friends(db: AsyncSession, user_id: str) -> List[FriendEntry]:
    """Active edges from user_id joined to the tracked profiles; empty on storage errors"""
    try:
        result = await db.execute(
            select(FriendEdge, Profile)
            .join(Profile, Profile.id == FriendEdge.friend_id)
            .where(
                FriendEdge.user_id == user_id,
                FriendEdge.status == FriendshipStatus.ACTIVE
            )
        )
    except SQLAlchemyError as e:
        logger.error(f"Error getting friends for {user_id}: {e}")
        return []

    return [
        FriendEntry(
            profile=ProfileRead.model_validate(profile),
            friendship_id=edge.id,
            added_at=edge.added_at
        )
        for edge, profile in result.all()
    ]

async def remove_friend(db: AsyncSession, user_id: str, friend_id: str) -> OperationResult:
    """
    Stop tracking friend_id.

    Only the (user_id, friend_id) edge goes away. The reverse edge and any
    location grants stay until removed explicitly (see revoke_visibility).
    Removing an edge that does not exist succeeds.
    """
    try:
        result = await db.execute(
            delete(FriendEdge).where(
                FriendEdge.user_id == user_id,
                FriendEdge.friend_id == friend_id
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error removing friend: {e}")
        await db.rollback()
        return OperationResult.fail(ErrorKind.REMOTE_FAILURE, str(e))

    if result.rowcount:
        logger.info(f"{user_id} stopped tracking {friend_id}")
    return OperationResult.ok()
