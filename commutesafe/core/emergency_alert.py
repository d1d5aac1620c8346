import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc

from commutesafe.config import settings
from commutesafe.core.errors import ErrorKind, OperationResult
from commutesafe.models.emergency import (
    EmergencyContact, EmergencyContactCreate, EmergencyContactUpdate,
    SOSAlert, SOSDispatchResult, SOSStatus
)
from commutesafe.models.location import UserLocation

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

ALERT_ERROR_MESSAGE = (
    "There was an issue sending the alert, but your location has been logged. "
    "Please call emergency services directly if you need help."
)

class LocationPermissionDenied(Exception):
    """The device refused access to its location"""

class LocationProvider(Protocol):
    async def current_fix(self) -> Optional[Point]:
        """Fresh device fix; may raise LocationPermissionDenied or time out"""
        ...

@dataclass
class ResolvedLocation:
    latitude: float
    longitude: float
    source: str  # last_known, fresh_fix, fallback

def fallback_location() -> ResolvedLocation:
    return ResolvedLocation(settings.SOS_FALLBACK_LAT, settings.SOS_FALLBACK_LNG, "fallback")

async def resolve_sos_location(
    last_known: Optional[Point] = None,
    provider: Optional[LocationProvider] = None
) -> ResolvedLocation:
    """
    Pick the location to attach to an SOS alert.

    Last known fix first, then a fresh fix, then the fixed campus coordinate.
    Never raises: an SOS must go out even without a usable fix.
    """
    if last_known is not None:
        return ResolvedLocation(last_known[0], last_known[1], "last_known")

    if provider is not None:
        try:
            fix = await provider.current_fix()
            if fix is not None:
                return ResolvedLocation(fix[0], fix[1], "fresh_fix")
        except LocationPermissionDenied:
            logger.warning("Location permission denied, using fallback SOS location")
        except Exception as e:
            logger.warning(f"Could not get location for SOS: {e}")

    return fallback_location()

async def get_last_known_location(db: AsyncSession, user_id: str) -> Optional[Point]:
    location = await db.get(UserLocation, user_id)
    if location is None or location.latitude is None or location.longitude is None:
        return None
    return (location.latitude, location.longitude)

# ============================================
# EMERGENCY CONTACTS
# ============================================

async def add_emergency_contact(
    db: AsyncSession,
    user_id: str,
    contact: EmergencyContactCreate
) -> EmergencyContact:
    record = EmergencyContact(user_id=user_id, **contact.model_dump())
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record

async def get_emergency_contacts(db: AsyncSession, user_id: str) -> List[EmergencyContact]:
    """Owner's contacts, newest first"""
    result = await db.execute(
        select(EmergencyContact)
        .where(EmergencyContact.user_id == user_id)
        .order_by(desc(EmergencyContact.created_at))
    )
    return list(result.scalars().all())

async def _owned_contact(db: AsyncSession, user_id: str, contact_id: uuid.UUID) -> Optional[EmergencyContact]:
    result = await db.execute(
        select(EmergencyContact).where(
            EmergencyContact.id == contact_id,
            EmergencyContact.user_id == user_id
        )
    )
    return result.scalar_one_or_none()

async def update_emergency_contact(
    db: AsyncSession,
    user_id: str,
    contact_id: uuid.UUID,
    changes: EmergencyContactUpdate
) -> Optional[EmergencyContact]:
    contact = await _owned_contact(db, user_id, contact_id)
    if contact is None:
        return None

    for field, value in changes.model_dump(exclude_unset=True).items():
        setattr(contact, field, value)

    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    return contact

async def delete_emergency_contact(db: AsyncSession, user_id: str, contact_id: uuid.UUID) -> bool:
    contact = await _owned_contact(db, user_id, contact_id)
    if contact is None:
        return False

    await db.delete(contact)
    await db.commit()
    return True

# ============================================
# SOS ALERTS
# ============================================

def format_contacts_summary(contacts: List[EmergencyContact]) -> str:
    """Confirmation text shown after an SOS; contacts are listed, not paged"""
    if not contacts:
        return (
            "Your emergency alert has been recorded.\n\n"
            "No emergency contacts set up. Go to Profile > Emergency Contacts to add contacts."
        )

    names = ", ".join(contact.name for contact in contacts[:3])
    more = "..." if len(contacts) > 3 else ""
    return (
        "Your emergency alert has been recorded.\n\n"
        f"Emergency contacts ({len(contacts)}): {names}{more}\n\n"
        "Please contact them directly if you need immediate help."
    )

class SOSDispatchService:
    async def dispatch(
        self,
        db: AsyncSession,
        user_id: str,
        location: ResolvedLocation,
        message: Optional[str] = None
    ) -> SOSDispatchResult:
        """
        Record one SOS alert and report the user's emergency contacts.

        Every call writes a new row; repeated activations are never merged.
        Contacts are only listed back to the user, nobody is notified here.
        """
        message = message or settings.SOS_DEFAULT_MESSAGE

        logger.warning(
            f"EMERGENCY ALERT from {user_id} at "
            f"({location.latitude}, {location.longitude}) [{location.source}]"
        )

        try:
            alert = SOSAlert(
                user_id=user_id,
                latitude=location.latitude,
                longitude=location.longitude,
                message=message,
                status=SOSStatus.ACTIVE
            )
            db.add(alert)
            await db.commit()
            await db.refresh(alert)
        except SQLAlchemyError as e:
            logger.error(f"Error sending SOS alert: {e}")
            await db.rollback()
            return SOSDispatchResult(
                success=False,
                latitude=location.latitude,
                longitude=location.longitude,
                location_source=location.source,
                message=ALERT_ERROR_MESSAGE,
                error=str(e)
            )

        try:
            contacts = await get_emergency_contacts(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting emergency contacts: {e}")
            contacts = []

        logger.info(f"SOS alert {alert.id} recorded, {len(contacts)} contacts on file")

        return SOSDispatchResult(
            success=True,
            alert_id=alert.id,
            latitude=location.latitude,
            longitude=location.longitude,
            location_source=location.source,
            contacts_count=len(contacts),
            contact_names=[contact.name for contact in contacts],
            message=format_contacts_summary(contacts)
        )

    async def cancel(self, db: AsyncSession, user_id: str, alert_id: uuid.UUID) -> OperationResult:
        """active -> cancelled. Alerts are never deleted."""
        result = await db.execute(
            select(SOSAlert).where(SOSAlert.id == alert_id, SOSAlert.user_id == user_id)
        )
        alert = result.scalar_one_or_none()
        if alert is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Alert not found")

        if alert.status == SOSStatus.ACTIVE:
            alert.status = SOSStatus.CANCELLED
            alert.cancelled_at = datetime.now(timezone.utc)
            db.add(alert)
            await db.commit()

        return OperationResult.ok()

    async def get_active_alerts(self, db: AsyncSession, user_id: str) -> List[SOSAlert]:
        result = await db.execute(
            select(SOSAlert)
            .where(SOSAlert.user_id == user_id, SOSAlert.status == SOSStatus.ACTIVE)
            .order_by(desc(SOSAlert.created_at))
        )
        return list(result.scalars().all())

# Global instance
sos_service = SOSDispatchService()
