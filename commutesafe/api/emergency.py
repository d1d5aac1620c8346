from fastapi import APIRouter, Depends, HTTPException
from typing import Any, List
import uuid

from commutesafe.database import SessionDep
from commutesafe.models.emergency import (
    EmergencyContactCreate, EmergencyContactRead, EmergencyContactUpdate,
    SOSAlertRead, SOSDispatchResult, SOSRequest
)
from commutesafe.models.profile import Profile
from commutesafe.api.auth import get_current_profile, raise_for_result
from commutesafe.core.emergency_alert import (
    add_emergency_contact, delete_emergency_contact, get_emergency_contacts,
    get_last_known_location, resolve_sos_location, sos_service, update_emergency_contact
)

router = APIRouter()

@router.post("/contacts", response_model=EmergencyContactRead, status_code=201)
async def create_contact(
    db: SessionDep,
    contact: EmergencyContactCreate,
    current_profile: Profile = Depends(get_current_profile)
):
    return await add_emergency_contact(db, current_profile.id, contact)

@router.get("/contacts", response_model=List[EmergencyContactRead])
async def list_contacts(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
):
    return await get_emergency_contacts(db, current_profile.id)

@router.put("/contacts/{contact_id}", response_model=EmergencyContactRead)
async def update_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    changes: EmergencyContactUpdate,
    current_profile: Profile = Depends(get_current_profile)
):
    contact = await update_emergency_contact(db, current_profile.id, contact_id, changes)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact

@router.delete("/contacts/{contact_id}")
async def delete_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, str]:
    if not await delete_emergency_contact(db, current_profile.id, contact_id):
        raise HTTPException(status_code=404, detail="Contact not found")
    return {"message": "Contact deleted"}

@router.post("/sos", response_model=SOSDispatchResult)
async def trigger_sos(
    db: SessionDep,
    sos_data: SOSRequest,
    current_profile: Profile = Depends(get_current_profile)
):
    # Device fix if sent, else the last stored fix, else the campus fallback
    if sos_data.latitude is not None and sos_data.longitude is not None:
        last_known = (sos_data.latitude, sos_data.longitude)
    else:
        last_known = await get_last_known_location(db, current_profile.id)

    location = await resolve_sos_location(last_known)
    result = await sos_service.dispatch(db, current_profile.id, location, sos_data.message)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.message)
    return result

@router.put("/sos/{alert_id}/cancel")
async def cancel_sos(
    db: SessionDep,
    alert_id: uuid.UUID,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, Any]:
    result = await sos_service.cancel(db, current_profile.id, alert_id)
    raise_for_result(result)
    return {"message": "Alert cancelled", "alert_id": str(alert_id)}

@router.get("/sos/active", response_model=List[SOSAlertRead])
async def get_active_alerts(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
):
    return await sos_service.get_active_alerts(db, current_profile.id)
