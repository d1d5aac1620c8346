from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional

class ProfileBase(SQLModel):
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def label(self) -> str:
        """Human readable name used in confirmation messages"""
        return self.display_name or self.email or "your friend"

class Profile(ProfileBase, table=True):
    __tablename__ = "profiles"

    # Issued by the identity provider (e.g. "user_2abc...")
    id: str = Field(primary_key=True, max_length=64)
    provider: str = "clerk"
    tracking_code: Optional[str] = Field(default=None, unique=True, index=True, max_length=6)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class ProfileRead(ProfileBase):
    id: str

class ProfileMe(ProfileRead):
    tracking_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class IdentityUser(SQLModel):
    """User payload handed over by the identity provider after sign-in"""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
