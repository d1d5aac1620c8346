"""
Core modules for the CommuteSafe campus app

This package contains the core business logic:
- tracking_codes / friendship: tracking codes and the friendship registry
- sharing: location fixes and visibility grants
- polling / presence: friend location polling and the friend board
- geofencing: campus geofence and distance checks
- emergency_alert / sos_trigger: SOS dispatch and the long-press trigger
- commute: route suggestions, fare estimates and route history
- analytics: usability logging
"""

from .geofencing import (
    haversine_distance_meters,
    is_inside,
    is_within_campus,
    geofence_status,
    validate_coordinates
)

from .tracking_codes import (
    generate_tracking_code,
    get_or_create_tracking_code,
    find_by_tracking_code
)

from .friendship import (
    add_friend_by_code,
    get_friends,
    remove_friend
)

from .sharing import (
    update_own_location,
    share_location_with,
    stop_sharing_with,
    revoke_visibility,
    get_location_record,
    fetch_visible_to
)

from .polling import (
    IntervalScheduler,
    LocationPoller,
    DatabaseLocationSource
)

from .presence import (
    build_friend_board,
    format_last_seen
)

from .emergency_alert import (
    sos_service,
    resolve_sos_location
)

from .analytics import (
    UsabilityTracker,
    InMemoryEventSink
)

__all__ = [
    # Geofencing
    "haversine_distance_meters",
    "is_inside",
    "is_within_campus",
    "geofence_status",
    "validate_coordinates",

    # Friends
    "generate_tracking_code",
    "get_or_create_tracking_code",
    "find_by_tracking_code",
    "add_friend_by_code",
    "get_friends",
    "remove_friend",

    # Location sharing
    "update_own_location",
    "share_location_with",
    "stop_sharing_with",
    "revoke_visibility",
    "get_location_record",
    "fetch_visible_to",
    "IntervalScheduler",
    "LocationPoller",
    "DatabaseLocationSource",
    "build_friend_board",
    "format_last_seen",

    # Emergency
    "sos_service",
    "resolve_sos_location",

    # Analytics
    "UsabilityTracker",
    "InMemoryEventSink"
]
