from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import UniqueConstraint
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid

from commutesafe.models.profile import ProfileRead

class FriendshipStatus(str, Enum):
    ACTIVE = "active"

class FriendEdge(SQLModel, table=True):
    """Directed edge: user_id tracks friend_id"""
    __tablename__ = "friends"
    __table_args__ = (UniqueConstraint("user_id", "friend_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    friend_id: str = Field(foreign_key="profiles.id", index=True)
    status: FriendshipStatus = FriendshipStatus.ACTIVE
    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class FriendEntry(SQLModel):
    profile: ProfileRead
    friendship_id: uuid.UUID
    added_at: datetime

class AddFriendRequest(SQLModel):
    code: str
