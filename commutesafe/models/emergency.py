from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum
import uuid

class SOSStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"

class EmergencyContactBase(SQLModel):
    name: str
    phone: str
    relationship: Optional[str] = None

class EmergencyContact(EmergencyContactBase, table=True):
    __tablename__ = "emergency_contacts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class EmergencyContactCreate(EmergencyContactBase):
    pass

class EmergencyContactUpdate(SQLModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None

class EmergencyContactRead(EmergencyContactBase):
    id: uuid.UUID
    user_id: str
    created_at: datetime

class SOSAlertBase(SQLModel):
    latitude: float
    longitude: float
    message: str = "Emergency SOS Alert!"

class SOSAlert(SOSAlertBase, table=True):
    __tablename__ = "sos_alerts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    status: SOSStatus = SOSStatus.ACTIVE
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    cancelled_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

class SOSAlertRead(SOSAlertBase):
    id: uuid.UUID
    user_id: str
    status: SOSStatus
    created_at: datetime
    cancelled_at: Optional[datetime]

class SOSRequest(SQLModel):
    # Device fix at activation time; omitted when the device has none
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    message: Optional[str] = None

class SOSDispatchResult(SQLModel):
    success: bool
    alert_id: Optional[uuid.UUID] = None
    latitude: float
    longitude: float
    location_source: str
    contacts_count: int = 0
    contact_names: List[str] = []
    message: str
    error: Optional[str] = None
