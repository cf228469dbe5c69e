from datetime import date
from typing import Any

from fastapi import APIRouter, Depends

from ..auth.admin_deps import require_admin
from ..config import PAIRING_TIMEZONE
from ..errors import PairingError
from ..http_helpers import to_http_exception
from ..schemas import RunDailyMatchingRequest, RunRecoveryRequest
from ..services.dates import get_pairing_date, now_utc

router = APIRouter()


@router.post("/admin/pairings/run-daily")
def run_daily_matching(
    payload: RunDailyMatchingRequest | None = None,
    admin: dict[str, Any] = Depends(require_admin),
) -> dict[str, Any]:
    from .. import main as m

    payload = payload or RunDailyMatchingRequest()
    try:
        return m.repo_run_daily_matching(payload.pairing_date, seed=payload.seed)
    except PairingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/admin/pairings/recover")
def run_recovery(
    payload: RunRecoveryRequest | None = None,
    admin: dict[str, Any] = Depends(require_admin),
) -> dict[str, Any]:
    from .. import main as m

    payload = payload or RunRecoveryRequest()
    return m.repo_run_recovery(dry_run=payload.dry_run)


@router.get("/admin/pairings/summary")
def get_day_summary(
    pairing_date: date | None = None,
    admin: dict[str, Any] = Depends(require_admin),
) -> dict[str, Any]:
    from .. import main as m

    return m.repo_day_summary(pairing_date or get_pairing_date(now_utc(), PAIRING_TIMEZONE))
