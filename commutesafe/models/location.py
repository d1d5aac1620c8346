from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import UniqueConstraint
from datetime import datetime, timezone
from typing import Optional, List
import uuid

class UserLocation(SQLModel, table=True):
    """Last known fix of a user. Written only by location updates."""
    __tablename__ = "locations"

    user_id: str = Field(foreign_key="profiles.id", primary_key=True)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class LocationShare(SQLModel, table=True):
    """One allow-list entry: viewer_id may read owner_id's location"""
    __tablename__ = "location_shares"
    __table_args__ = (UniqueConstraint("owner_id", "viewer_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: str = Field(foreign_key="profiles.id", index=True)
    viewer_id: str = Field(foreign_key="profiles.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class VisibleLocation(SQLModel):
    user_id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    updated_at: datetime

    @property
    def has_fix(self) -> bool:
        return self.latitude is not None and self.longitude is not None

class LocationRecord(VisibleLocation):
    shared_with: List[str] = []

class LocationUpdateRequest(SQLModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

class FriendMarker(SQLModel):
    id: str
    title: str
    latitude: float
    longitude: float
    description: str
    last_seen: str
    photo_url: Optional[str] = None
    has_location: bool = True

class WaitingFriend(SQLModel):
    id: str
    title: str
    description: str = "Location not shared yet"
    has_location: bool = False

class FriendBoard(SQLModel):
    active: List[FriendMarker] = []
    waiting: List[WaitingFriend] = []

class GeofenceStatus(SQLModel):
    inside: bool
    distance_m: float
    radius_m: float
    show_route: bool
