from datetime import datetime, timezone
from typing import Iterable, Optional

from commutesafe.models.friendship import FriendEntry
from commutesafe.models.location import (
    FriendBoard, FriendMarker, VisibleLocation, WaitingFriend
)

def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def format_last_seen(updated_at: datetime, now: Optional[datetime] = None) -> str:
    """
    "Just now" under a minute, "{m} min ago" under an hour, "{h}h ago" beyond.

    There is no day tier: a location left alone for two days reads "48h ago".
    """
    now = as_utc(now or datetime.now(timezone.utc))
    elapsed_minutes = int((now - as_utc(updated_at)).total_seconds() // 60)

    if elapsed_minutes < 1:
        return "Just now"
    if elapsed_minutes < 60:
        return f"{elapsed_minutes} min ago"
    return f"{elapsed_minutes // 60}h ago"

def friend_title(entry: FriendEntry) -> str:
    profile = entry.profile
    if profile.display_name:
        return profile.display_name
    if profile.email:
        return profile.email.split("@")[0]
    return "Friend"

def build_friend_board(
    friends: Iterable[FriendEntry],
    locations: Iterable[VisibleLocation],
    now: Optional[datetime] = None
) -> FriendBoard:
    """
    Join the roster to the visible locations for display.

    Friends with a located record get a marker; the rest are listed as
    waiting. Records without a matching friend are dropped, never shown as
    anonymous markers.
    """
    by_user = {location.user_id: location for location in locations}
    board = FriendBoard()

    for entry in friends:
        title = friend_title(entry)
        location = by_user.get(entry.profile.id)

        if location is None or not location.has_fix:
            board.waiting.append(WaitingFriend(id=entry.profile.id, title=title))
            continue

        last_seen = format_last_seen(location.updated_at, now)
        board.active.append(FriendMarker(
            id=entry.profile.id,
            title=title,
            latitude=location.latitude,
            longitude=location.longitude,
            description=f"Last seen: {last_seen}",
            last_seen=last_seen,
            photo_url=entry.profile.photo_url
        ))

    return board
