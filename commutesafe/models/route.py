from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import JSON
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from enum import Enum
import uuid

class VehicleType(str, Enum):
    JEEPNEY = "jeepney"
    BUS = "bus"
    TRICYCLE = "tricycle"
    VAN = "van"
    CAR = "car"

class CommuteRoute(SQLModel):
    id: str
    name: str
    vehicle_type: VehicleType
    fare: int  # pesos
    duration: int  # minutes
    distance: str
    description: str
    stops: str
    steps: List[str]

class RouteHistory(SQLModel, table=True):
    __tablename__ = "route_history"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    origin: str
    destination: str
    route_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class RouteHistoryCreate(SQLModel):
    origin: str
    destination: str
    route_data: Optional[Dict[str, Any]] = None

class RouteHistoryRead(RouteHistoryCreate):
    id: uuid.UUID
    user_id: str
    created_at: datetime

class RouteStep(SQLModel):
    instruction: str
    distance: float  # meters

class RouteSummary(SQLModel):
    distance: float  # meters
    duration: float  # seconds
    steps: List[RouteStep] = []
    geometry: Optional[Dict[str, Any]] = None

    @property
    def distance_km(self) -> float:
        return round(self.distance / 1000, 1)

    @property
    def duration_minutes(self) -> int:
        return round(self.duration / 60)

class Place(SQLModel):
    id: Optional[int] = None
    name: str
    address: str
    full_address: Optional[str] = None
    latitude: float
    longitude: float
