from datetime import datetime, timedelta, timezone

import pytest

from commutesafe.core.presence import build_friend_board, format_last_seen
from commutesafe.models.friendship import FriendEntry
from commutesafe.models.location import VisibleLocation
from commutesafe.models.profile import ProfileRead

NOW = datetime(2024, 11, 4, 8, 30, tzinfo=timezone.utc)

@pytest.mark.parametrize("elapsed, expected", [
    (timedelta(seconds=30), "Just now"),
    (timedelta(seconds=59), "Just now"),
    (timedelta(minutes=1), "1 min ago"),
    (timedelta(minutes=5), "5 min ago"),
    (timedelta(minutes=59, seconds=59), "59 min ago"),
    (timedelta(minutes=125), "2h ago"),
    (timedelta(hours=50), "50h ago"),
    (timedelta(minutes=-3), "Just now"),
])
def test_last_seen_text(elapsed, expected):
    assert format_last_seen(NOW - elapsed, NOW) == expected

def test_naive_timestamps_are_read_as_utc():
    naive = (NOW - timedelta(minutes=5)).replace(tzinfo=None)
    assert format_last_seen(naive, NOW) == "5 min ago"

def _friend(user_id, display_name=None, email=None):
    return FriendEntry(
        profile=ProfileRead(id=user_id, display_name=display_name, email=email),
        friendship_id=f"00000000-0000-0000-0000-00000000000{user_id[-1]}",
        added_at=NOW
    )

def test_board_splits_located_and_waiting_friends():
    friends = [
        _friend("user_1", display_name="Ana Santos"),
        _friend("user_2", email="ben.cruz@olfu.edu.ph"),
        _friend("user_3"),
    ]
    locations = [
        VisibleLocation(user_id="user_1", latitude=14.72, longitude=121.04,
                        updated_at=NOW - timedelta(minutes=5)),
        VisibleLocation(user_id="user_3", updated_at=NOW),
        VisibleLocation(user_id="stranger", latitude=14.0, longitude=121.0, updated_at=NOW),
    ]

    board = build_friend_board(friends, locations, NOW)

    assert [marker.id for marker in board.active] == ["user_1"]
    marker = board.active[0]
    assert marker.title == "Ana Santos"
    assert marker.description == "Last seen: 5 min ago"
    assert (marker.latitude, marker.longitude) == (14.72, 121.04)

    assert [(item.id, item.title) for item in board.waiting] == [
        ("user_2", "ben.cruz"),
        ("user_3", "Friend"),
    ]
    assert all(item.description == "Location not shared yet" for item in board.waiting)

def test_empty_board():
    board = build_friend_board([], [], NOW)
    assert board.active == [] and board.waiting == []
