from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError, jwt
from datetime import datetime, timezone, timedelta
from typing import Optional
import logging

from commutesafe.database import SessionDep
from commutesafe.models.profile import Profile, ProfileMe, IdentityUser
from commutesafe.core.errors import ErrorKind
from commutesafe.core.tracking_codes import get_or_create_tracking_code
from commutesafe.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer()

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.REMOTE_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}

def raise_for_result(result):
    """Turn a failed operation result into an HTTPException"""
    if not result.success:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.error_kind, status.HTTP_400_BAD_REQUEST),
            detail=result.error
        )

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def decode_access_token(token: str) -> Optional[str]:
    """Profile id carried by a token, or None when the token is invalid or expired"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")

async def get_current_profile(
    db: SessionDep,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Profile:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    profile_id = decode_access_token(credentials.credentials)
    if profile_id is None:
        raise credentials_exception

    profile = await db.get(Profile, profile_id)
    if profile is None:
        raise credentials_exception

    return profile

async def sync_identity_profile(db: AsyncSession, identity: IdentityUser) -> Profile:
    """
    Upsert the profile for a signed-in identity-provider user.

    Runs on every sign-in. Display fields follow the provider; the tracking
    code is never touched here.
    """
    display_name = f"{identity.first_name or ''} {identity.last_name or ''}".strip()

    profile = await db.get(Profile, identity.id)
    if profile is None:
        profile = Profile(id=identity.id)
        created = True
    else:
        created = False

    profile.email = identity.email
    profile.display_name = display_name or settings.DEFAULT_DISPLAY_NAME
    profile.photo_url = identity.image_url
    profile.provider = "clerk"
    profile.updated_at = datetime.now(timezone.utc)

    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        if not created:
            raise
        # Created concurrently by another sign-in; update that row instead
        await db.rollback()
        return await sync_identity_profile(db, identity)

    await db.refresh(profile)
    logger.info(f"Identity synced: {identity.id}")
    return profile

class SessionResponse(ProfileMe):
    access_token: str
    token_type: str = "bearer"

@router.post("/sync", response_model=SessionResponse)
async def sync_identity(
    identity: IdentityUser,
    db: SessionDep
):
    profile = await sync_identity_profile(db, identity)

    access_token = create_access_token(
        data={"sub": profile.id},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    return SessionResponse(
        **profile.model_dump(),
        access_token=access_token,
        token_type="bearer"
    )

@router.get("/me", response_model=ProfileMe)
async def get_me(
    current_profile: Profile = Depends(get_current_profile)
):
    return current_profile

@router.get("/tracking-code")
async def get_tracking_code(
    db: SessionDep,
    current_profile: Profile = Depends(get_current_profile)
) -> dict[str, str]:
    result = await get_or_create_tracking_code(db, current_profile.id)
    raise_for_result(result)
    return {"code": result.code}
