from __future__ import annotations

import logging
from datetime import datetime

from .. import repo
from ..errors import NotAParticipant, PairingConflict, PairingNotFound
from .committer import conditional_update
from .dates import get_pairing_date
from .events import log_pairing_event
from .notifications import notify_partner_submitted, notify_pairing_completed
from .state_machine import (
    ArtificialOutcome,
    PairingRecord,
    PairingStatus,
    check_invariants,
    plan_artificial_completion,
    plan_submission,
)

logger = logging.getLogger(__name__)

# A lost compare-and-swap is re-evaluated against fresh state once per concurrent writer.
MAX_CAS_ATTEMPTS = 3


def load_pairing(db, pairing_id: str) -> PairingRecord:
    row = repo.get_pairing(db, pairing_id)
    if not row:
        raise PairingNotFound(f"Pairing {pairing_id} not found")
    record = PairingRecord.from_row(row)
    check_invariants(record)
    return record


def submit_photo(db, pairing_id: str, member_id: str, photo_ref: str, is_private: bool, now: datetime) -> PairingRecord:
    if not photo_ref or not str(photo_ref).strip():
        raise ValueError("photo_ref is required")

    for _ in range(MAX_CAS_ATTEMPTS):
        record = load_pairing(db, pairing_id)
        side = record.side_of(member_id)
        if side is None:
            raise NotAParticipant(f"Member {member_id} is not part of pairing {pairing_id}")

        # Raises PairingConflict for a filled side or a completed pairing.
        values = plan_submission(record, side, photo_ref, is_private, now)
        if not conditional_update(db, pairing_id, record.status, values):
            db.rollback()
            logger.info(
                "[LIFECYCLE] submit lost race pairing_id=%s member_id=%s expected=%s; re-reading",
                pairing_id,
                member_id,
                record.status.value,
            )
            continue

        new_status = PairingStatus(values["status"])
        log_pairing_event(
            db,
            event_type="photo_submitted",
            pairing_id=pairing_id,
            member_id=member_id,
            pairing_date=record.pairing_date,
            payload={"side": side.value, "from": record.status.value, "to": new_status.value},
        )
        if new_status is PairingStatus.COMPLETED:
            log_pairing_event(
                db,
                event_type="pairing_completed",
                pairing_id=pairing_id,
                member_id=member_id,
                pairing_date=record.pairing_date,
                payload={"artificial": False},
            )
            notify_pairing_completed(db, pairing_id=pairing_id, member_ids=[record.member_a, record.member_b], is_artificial=False)
        else:
            notify_partner_submitted(db, pairing_id=pairing_id, member_id=record.member_on(side.other), submitter_id=member_id)
        db.commit()

        logger.info(
            "[LIFECYCLE] photo submitted pairing_id=%s side=%s %s->%s",
            pairing_id,
            side.value,
            record.status.value,
            new_status.value,
        )
        return load_pairing(db, pairing_id)

    raise PairingConflict(f"Pairing {pairing_id} kept changing during submission", reason="concurrent_update")


def artificially_complete(db, pairing_id: str, now: datetime, reason: str) -> tuple[ArtificialOutcome, PairingRecord]:
    record = load_pairing(db, pairing_id)
    values = plan_artificial_completion(record, now, reason)
    if values is None:
        return ArtificialOutcome.ALREADY_COMPLETED, record

    if not conditional_update(db, pairing_id, record.status, values):
        db.rollback()
        current = load_pairing(db, pairing_id)
        if current.status is PairingStatus.COMPLETED:
            logger.info("[LIFECYCLE] pairing_id=%s completed concurrently; nothing to do", pairing_id)
            return ArtificialOutcome.ALREADY_COMPLETED, current
        raise PairingConflict(
            f"Pairing {pairing_id} changed from {record.status.value} to {current.status.value}",
            reason="concurrent_update",
        )

    log_pairing_event(
        db,
        event_type="artificially_completed",
        pairing_id=pairing_id,
        pairing_date=record.pairing_date,
        payload={"from": record.status.value, "reason": reason},
    )
    notify_pairing_completed(db, pairing_id=pairing_id, member_ids=[record.member_a, record.member_b], is_artificial=True)
    db.commit()
    logger.info("[LIFECYCLE] artificially completed pairing_id=%s from=%s", pairing_id, record.status.value)
    return ArtificialOutcome.COMPLETED, load_pairing(db, pairing_id)


def get_current_pairing(db, member_id: str, now: datetime, tz: str) -> PairingRecord | None:
    """Today's pairing for a member: an active one if any, else the latest completed one."""
    rows = repo.list_member_pairings_for_date(db, member_id, get_pairing_date(now, tz))
    records = [PairingRecord.from_row(r) for r in rows]
    for record in records:
        if not record.status.is_terminal:
            return record
    completed = [r for r in records if r.status is PairingStatus.COMPLETED]
    if not completed:
        return None
    return max(completed, key=lambda r: r.completed_at or r.expires_at)
