from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_member
from ..config import RL_REMINDER_LIMIT, RL_SUBMIT_PHOTO_LIMIT, RL_WINDOW_SECONDS
from ..errors import PairingError
from ..http_helpers import to_http_exception, validate_photo_ref
from ..schemas import ReminderRequest, SubmitPhotoRequest
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()

RL_SUBMIT_PHOTO = rate_limit_dependency("submit_photo", RL_SUBMIT_PHOTO_LIMIT, RL_WINDOW_SECONDS)
RL_REMINDER = rate_limit_dependency("send_reminder", RL_REMINDER_LIMIT, RL_WINDOW_SECONDS)


@router.get("/pairings/current")
def get_current_pairing(current_member: dict[str, Any] = Depends(get_current_member)) -> dict[str, Any]:
    from .. import main as m

    row = m.repo_get_current_pairing(str(current_member["id"]))
    if not row:
        return {"pairing": None, "message": "No pairing for today yet"}
    return {"pairing": row}


@router.get("/pairings/history")
def get_pairing_history(limit: int = 20, current_member: dict[str, Any] = Depends(get_current_member)) -> dict[str, Any]:
    from .. import main as m

    rows = m.repo_list_pairing_history(str(current_member["id"]), limit=limit)
    return {"pairings": rows, "count": len(rows)}


@router.post("/pairings/{pairing_id}/photo", dependencies=[RL_SUBMIT_PHOTO])
def submit_photo(
    pairing_id: str,
    payload: SubmitPhotoRequest,
    current_member: dict[str, Any] = Depends(get_current_member),
) -> dict[str, Any]:
    from .. import main as m

    photo_ref = validate_photo_ref(payload.photo_ref)
    try:
        row = m.repo_submit_photo(pairing_id, str(current_member["id"]), photo_ref, is_private=payload.is_private)
    except PairingError as exc:
        raise to_http_exception(exc) from exc
    return {"pairing": row}


@router.post("/pairings/{pairing_id}/reminders", dependencies=[RL_REMINDER])
def send_reminder(
    pairing_id: str,
    payload: ReminderRequest,
    current_member: dict[str, Any] = Depends(get_current_member),
) -> dict[str, Any]:
    from .. import main as m

    try:
        return m.repo_send_reminder(pairing_id, str(current_member["id"]), payload.to_member_id)
    except PairingError as exc:
        raise to_http_exception(exc) from exc
