from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, update

from ..errors import NotAParticipant, PairingConflict, ReminderThrottled
from ..models import Pairing
from .dates import as_utc
from .events import log_pairing_event
from .lifecycle import load_pairing
from .notifications import notify_reminder
from .state_machine import PairingStatus

logger = logging.getLogger(__name__)

PAIRINGS = Pairing.__table__


def _claim_reminder_slot(db, pairing_id: str, from_member_id: str, now: datetime, cooldown: timedelta) -> bool:
    res = db.execute(
        update(PAIRINGS)
        .where(
            PAIRINGS.c.id == pairing_id,
            PAIRINGS.c.status != PairingStatus.COMPLETED.value,
            or_(PAIRINGS.c.last_reminder_at.is_(None), PAIRINGS.c.last_reminder_at <= now - cooldown),
        )
        .values(last_reminder_at=now, last_reminder_by=from_member_id)
    )
    return int(res.rowcount or 0) == 1


def send_reminder(
    db,
    pairing_id: str,
    from_member_id: str,
    to_member_id: str,
    now: datetime,
    *,
    cooldown_minutes: int = 15,
) -> dict[str, Any]:
    now = as_utc(now)
    cooldown = timedelta(minutes=cooldown_minutes)
    record = load_pairing(db, pairing_id)

    if from_member_id == to_member_id:
        raise PairingConflict("Cannot remind yourself", reason="self_reminder")
    if record.side_of(from_member_id) is None or record.side_of(to_member_id) is None:
        raise NotAParticipant(f"Both members must belong to pairing {pairing_id}")
    if record.status.is_terminal:
        raise PairingConflict("Pairing is already completed", reason="already_completed")

    if not _claim_reminder_slot(db, pairing_id, from_member_id, now, cooldown):
        db.rollback()
        current = load_pairing(db, pairing_id)
        if current.status.is_terminal:
            raise PairingConflict("Pairing is already completed", reason="already_completed")
        last = current.last_reminder_at or now
        retry_after = max(1, math.ceil((last + cooldown - now).total_seconds()))
        raise ReminderThrottled(
            f"A reminder was already sent for pairing {pairing_id}",
            retry_after_seconds=retry_after,
        )

    log_pairing_event(
        db,
        event_type="reminder_sent",
        pairing_id=pairing_id,
        member_id=from_member_id,
        pairing_date=record.pairing_date,
        payload={"to": to_member_id},
    )
    db.commit()

    delivered = True
    try:
        notify_reminder(db, pairing_id=pairing_id, from_member_id=from_member_id, to_member_id=to_member_id, sent_at=now)
        db.commit()
    except Exception:
        db.rollback()
        delivered = False
        logger.exception("[REMINDER] hand-off failed pairing_id=%s to=%s", pairing_id, to_member_id)

    logger.info("[REMINDER] sent pairing_id=%s from=%s to=%s delivered=%s", pairing_id, from_member_id, to_member_id, delivered)
    return {
        "pairing_id": pairing_id,
        "from_member_id": from_member_id,
        "to_member_id": to_member_id,
        "sent_at": now.isoformat(),
        "delivered": delivered,
    }
