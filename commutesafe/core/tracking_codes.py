import logging
import secrets
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, col

from commutesafe.config import settings
from commutesafe.core.errors import ErrorKind, LookupResult, TrackingCodeResult
from commutesafe.models.profile import Profile, ProfileRead

logger = logging.getLogger(__name__)

# No 0/O/1/I so codes survive being read out loud or copied by hand
TRACKING_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TRACKING_CODE_LENGTH = 6

def generate_tracking_code() -> str:
    return "".join(secrets.choice(TRACKING_CODE_ALPHABET) for _ in range(TRACKING_CODE_LENGTH))

def normalize_tracking_code(code: str) -> str:
    return code.strip().upper()

async def get_or_create_tracking_code(
    db: AsyncSession,
    user_id: str,
    generator: Callable[[], str] = generate_tracking_code,
    max_attempts: Optional[int] = None
) -> TrackingCodeResult:
    """
    Return the user's tracking code, generating one on first request.

    Candidate codes already in use are skipped; after max_attempts collisions
    the call fails instead of looping forever. A code, once stored, never
    changes: the write only applies while the profile has no code yet.
    """
    attempts = settings.TRACKING_CODE_MAX_ATTEMPTS if max_attempts is None else max_attempts

    try:
        result = await db.execute(select(Profile.tracking_code).where(Profile.id == user_id))
        row = result.first()
        if row is None:
            return TrackingCodeResult.fail(ErrorKind.NOT_FOUND, "Profile not found")
        if row[0]:
            return TrackingCodeResult.ok(code=row[0])

        for _ in range(attempts):
            code = generator()

            taken = await db.execute(select(Profile.id).where(Profile.tracking_code == code))
            if taken.first() is not None:
                continue

            try:
                await db.execute(
                    update(Profile)
                    .where(Profile.id == user_id, col(Profile.tracking_code).is_(None))
                    .values(tracking_code=code)
                )
                await db.commit()
            except IntegrityError:
                # Somebody else claimed this code between the check and the write
                await db.rollback()
                continue

            stored = await db.execute(select(Profile.tracking_code).where(Profile.id == user_id))
            return TrackingCodeResult.ok(code=stored.scalar_one())

        logger.error(f"Tracking code generation exhausted {attempts} attempts for {user_id}")
        return TrackingCodeResult.fail(ErrorKind.CONFLICT, "Failed to generate unique code")

    except SQLAlchemyError as e:
        logger.error(f"Error in get_or_create_tracking_code: {e}")
        await db.rollback()
        return TrackingCodeResult.fail(ErrorKind.REMOTE_FAILURE, str(e))

async def find_by_tracking_code(db: AsyncSession, code: str) -> LookupResult:
    """Resolve a tracking code (case-insensitive, surrounding spaces ignored) to a profile"""
    normalized = normalize_tracking_code(code)

    try:
        result = await db.execute(select(Profile).where(Profile.tracking_code == normalized))
        profile = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Error finding user by code: {e}")
        return LookupResult.fail(ErrorKind.REMOTE_FAILURE, str(e))

    if profile is None:
        return LookupResult.fail(ErrorKind.NOT_FOUND, "No user found with this code")

    return LookupResult.ok(user=ProfileRead.model_validate(profile))
