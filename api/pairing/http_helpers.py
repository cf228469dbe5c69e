import re

from fastapi import HTTPException

from .errors import (
    InvariantViolation,
    NotAParticipant,
    PairingConflict,
    PairingError,
    PairingNotFound,
    ReminderThrottled,
)

PHOTO_REF_MAX_LENGTH = 1000


def validate_photo_ref(photo_ref: str) -> str:
    ref = (photo_ref or "").strip()
    if not ref:
        raise HTTPException(status_code=400, detail="photo_ref is required")
    if len(ref) > PHOTO_REF_MAX_LENGTH:
        raise HTTPException(status_code=400, detail=f"photo_ref must be {PHOTO_REF_MAX_LENGTH} characters or fewer")
    if re.search(r"\s", ref):
        raise HTTPException(status_code=400, detail="photo_ref must not contain whitespace")
    return ref


def to_http_exception(exc: PairingError) -> HTTPException:
    if isinstance(exc, PairingNotFound):
        return HTTPException(status_code=404, detail="Pairing not found")
    if isinstance(exc, NotAParticipant):
        return HTTPException(status_code=403, detail="Forbidden")
    if isinstance(exc, ReminderThrottled):
        return HTTPException(
            status_code=429,
            detail={"message": str(exc), "reason": exc.reason},
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )
    if isinstance(exc, PairingConflict):
        return HTTPException(status_code=409, detail={"message": str(exc), "reason": exc.reason})
    if isinstance(exc, InvariantViolation):
        return HTTPException(status_code=500, detail={"message": "Pairing data is inconsistent", "reason": exc.reason})
    return HTTPException(status_code=400, detail={"message": str(exc), "reason": exc.reason})
