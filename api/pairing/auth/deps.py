"""
Authentication dependencies for FastAPI.

Member routes read the member id from the ``sub`` claim of a bearer token and
resolve it against the member table. Scheduler routes use the admin token
dependency in ``admin_deps``.
"""

import logging
import uuid
from typing import Any

from fastapi import Header, HTTPException

from pairing import repo
from pairing.auth.security import decode_access_token
from pairing.config import DEV_MODE
from pairing.database import SessionLocal

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when authentication fails with detailed reason."""

    def __init__(self, reason: str, detail: str = "unauthorized"):
        self.reason = reason
        self.detail = detail
        self.trace_id = str(uuid.uuid4())
        super().__init__(detail)


def _unauthorized(reason: str, trace_id: str, message: str = "unauthorized", status_code: int = 401) -> HTTPException:
    detail: dict[str, Any] = {"message": message, "trace_id": trace_id}
    if DEV_MODE:
        detail["reason"] = reason
    return HTTPException(status_code=status_code, detail=detail)


def _extract_bearer(authorization: str | None) -> str:
    if not authorization:
        raise AuthError(reason="missing_token", detail="Missing Authorization header")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise AuthError(reason="malformed_token", detail="Invalid Authorization header")
    return parts[1].strip()


def get_current_member(authorization: str | None = Header(default=None, alias="Authorization")) -> dict[str, Any]:
    try:
        token = _extract_bearer(authorization)
    except AuthError as e:
        logger.warning("[auth] rejected reason=%s trace_id=%s", e.reason, e.trace_id)
        raise _unauthorized(e.reason, e.trace_id, message=e.detail)

    trace_id = str(uuid.uuid4())
    try:
        payload = decode_access_token(token)
    except HTTPException as e:
        if e.status_code != 401:
            raise
        reason = "token_expired" if "expired" in str(e.detail).lower() else "signature_invalid"
        logger.warning("[auth] rejected reason=%s trace_id=%s", reason, trace_id)
        raise _unauthorized(reason, trace_id)

    member_id = str(payload.get("sub") or "")
    if not member_id:
        logger.warning("[auth] rejected reason=token_missing_subject trace_id=%s", trace_id)
        raise _unauthorized("token_missing_subject", trace_id)

    with SessionLocal() as db:
        member = repo.get_member(db, member_id)
    if not member:
        logger.warning("[auth] rejected reason=member_not_found member_id=%s trace_id=%s", member_id, trace_id)
        raise _unauthorized("member_not_found", trace_id)
    if not member.get("is_active"):
        raise _unauthorized("member_inactive", trace_id, message="Account inactive", status_code=403)

    logger.debug("[auth] member_id=%s", member_id)
    return {
        "id": str(member["id"]),
        "username": member.get("username"),
    }
