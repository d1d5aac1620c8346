"""
Structured results for data-access operations.

Expected domain conditions (unknown code, already tracking, self add) and
storage failures are reported as results instead of exceptions, so the API
layer can map them to a human readable message and an HTTP status.
"""

from enum import Enum
from typing import Optional, List

from sqlmodel import SQLModel

from commutesafe.models.profile import ProfileRead

class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    REMOTE_FAILURE = "remote_failure"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"

class FriendError(str, Enum):
    CODE_NOT_FOUND = "code_not_found"
    SELF_ADD = "self_add"
    ALREADY_TRACKING = "already_tracking"
    REMOTE_FAILURE = "remote_failure"

FRIEND_ERROR_KINDS = {
    FriendError.CODE_NOT_FOUND: ErrorKind.NOT_FOUND,
    FriendError.SELF_ADD: ErrorKind.CONFLICT,
    FriendError.ALREADY_TRACKING: ErrorKind.CONFLICT,
    FriendError.REMOTE_FAILURE: ErrorKind.REMOTE_FAILURE,
}

class OperationResult(SQLModel):
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, **data):
        return cls(success=True, **data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str, **data):
        return cls(success=False, error=error, error_kind=kind, **data)

class TrackingCodeResult(OperationResult):
    code: Optional[str] = None

class LookupResult(OperationResult):
    user: Optional[ProfileRead] = None

class AddFriendResult(OperationResult):
    friend: Optional[ProfileRead] = None
    message: Optional[str] = None
    reason: Optional[FriendError] = None

    @classmethod
    def rejected(cls, reason: FriendError, error: str):
        return cls(
            success=False,
            error=error,
            error_kind=FRIEND_ERROR_KINDS[reason],
            reason=reason
        )

class ShareResult(OperationResult):
    changed: bool = False
    shared_with: List[str] = []
