"""
Location sharing: coordinates and visibility grants.

A user's location record has two independent writers: the device pushing new
fixes, and the sharing coordinator granting or revoking viewers. They own
separate tables (``locations`` and ``location_shares``) and the record is
assembled at read time, so neither writer can overwrite the other's fields.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from commutesafe.core.errors import ErrorKind, OperationResult, ShareResult
from commutesafe.core.presence import as_utc
from commutesafe.models.location import (
    LocationRecord, LocationShare, UserLocation, VisibleLocation
)

logger = logging.getLogger(__name__)

async def update_own_location(
    db: AsyncSession,
    user_id: str,
    latitude: float,
    longitude: float
) -> OperationResult:
    """Store a new fix. Grants are never read or written here."""
    now = datetime.now(timezone.utc)
    try:
        location = await db.get(UserLocation, user_id)
        if location is None:
            location = UserLocation(user_id=user_id)
        location.latitude = latitude
        location.longitude = longitude
        location.updated_at = now
        db.add(location)
        try:
            await db.commit()
        except IntegrityError:
            # First fix raced with another first fix from the same user
            await db.rollback()
            location = await db.get(UserLocation, user_id)
            if location is None:
                raise
            location.latitude = latitude
            location.longitude = longitude
            location.updated_at = now
            db.add(location)
            await db.commit()
        return OperationResult.ok()
    except SQLAlchemyError as e:
        logger.error(f"Error updating location for {user_id}: {e}")
        await db.rollback()
        return OperationResult.fail(ErrorKind.REMOTE_FAILURE, str(e))

async def share_location_with(db: AsyncSession, owner_id: str, viewer_id: str) -> ShareResult:
    """Add viewer_id to owner_id's allow-list. No-op when already present."""
    if owner_id == viewer_id:
        return ShareResult.fail(ErrorKind.CONFLICT, "You cannot share your location with yourself")

    try:
        existing = await db.execute(
            select(LocationShare.id).where(
                LocationShare.owner_id == owner_id,
                LocationShare.viewer_id == viewer_id
            )
        )
        if existing.first() is not None:
            return ShareResult.ok(changed=False, shared_with=await get_shared_with(db, owner_id))

        db.add(LocationShare(owner_id=owner_id, viewer_id=viewer_id))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            return ShareResult.ok(changed=False, shared_with=await get_shared_with(db, owner_id))

        logger.info(f"{owner_id} now shares location with {viewer_id}")
        return ShareResult.ok(changed=True, shared_with=await get_shared_with(db, owner_id))
    except SQLAlchemyError as e:
        logger.error(f"Error in share_location_with: {e}")
        await db.rollback()
        return ShareResult.fail(ErrorKind.REMOTE_FAILURE, str(e))

async def stop_sharing_with(db: AsyncSession, owner_id: str, viewer_id: str) -> ShareResult:
    """Remove one viewer from owner_id's allow-list. Coordinates are untouched."""
    try:
        result = await db.execute(
            delete(LocationShare).where(
                LocationShare.owner_id == owner_id,
                LocationShare.viewer_id == viewer_id
            )
        )
        await db.commit()
        if result.rowcount:
            logger.info(f"{owner_id} stopped sharing location with {viewer_id}")
        return ShareResult.ok(
            changed=bool(result.rowcount),
            shared_with=await get_shared_with(db, owner_id)
        )
    except SQLAlchemyError as e:
        logger.error(f"Error in stop_sharing_with: {e}")
        await db.rollback()
        return ShareResult.fail(ErrorKind.REMOTE_FAILURE, str(e))

# Friend removal leaves visibility alone; callers revoke explicitly
revoke_visibility = stop_sharing_with

async def get_shared_with(db: AsyncSession, owner_id: str) -> List[str]:
    result = await db.execute(
        select(LocationShare.viewer_id).where(LocationShare.owner_id == owner_id)
    )
    return list(result.scalars().all())

async def get_location_record(db: AsyncSession, user_id: str) -> Optional[LocationRecord]:
    """
    Assemble the owner's full record: last fix plus allow-list.

    Returns None when the user has neither a fix nor any grant.
    """
    location = await db.get(UserLocation, user_id)
    shares_result = await db.execute(
        select(LocationShare).where(LocationShare.owner_id == user_id)
    )
    shares = list(shares_result.scalars().all())

    if location is None and not shares:
        return None

    if location is not None:
        updated_at = as_utc(location.updated_at)
    else:
        updated_at = max(as_utc(share.created_at) for share in shares)

    return LocationRecord(
        user_id=user_id,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        updated_at=updated_at,
        shared_with=[share.viewer_id for share in shares]
    )

async def fetch_visible_to(db: AsyncSession, viewer_id: str) -> List[VisibleLocation]:
    """
    Every location record whose allow-list contains viewer_id.

    This is the only read authorization check for locations; friendship edges
    play no part in it. Owners who granted access before their first fix come
    back with null coordinates.
    """
    result = await db.execute(
        select(LocationShare, UserLocation)
        .join(UserLocation, UserLocation.user_id == LocationShare.owner_id, isouter=True)
        .where(LocationShare.viewer_id == viewer_id)
    )

    visible: List[VisibleLocation] = []
    for share, location in result.all():
        visible.append(VisibleLocation(
            user_id=share.owner_id,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            updated_at=as_utc(location.updated_at if location else share.created_at)
        ))
    return visible
