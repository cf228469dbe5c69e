"""Atomic writes for the pairing core.

Two shapes of write exist:

* the daily batch: every pairing of a run, its companion conversation, and the
  waitlist / priority flags of every candidate, committed as one transaction;
* a single-record transition keyed on the expected prior ``status``
  (compare-and-swap), used by submissions, artificial completion and
  reminders.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import insert, update

from ..models import Member, Pairing
from .dates import as_utc
from .events import log_pairing_event
from .notifications import notify_pairing_created
from .state_machine import PairingStatus

logger = logging.getLogger(__name__)

MEMBERS = Member.__table__
PAIRINGS = Pairing.__table__

ConversationCreator = Callable[[Any, str, str, str, date], str]


@dataclass
class DailyBatch:
    pairing_date: date
    expires_at: datetime
    pairs: list[tuple[str, str]] = field(default_factory=list)
    waitlist: list[str] = field(default_factory=list)

    @property
    def matched_ids(self) -> list[str]:
        return [member_id for pair in self.pairs for member_id in pair]


@dataclass
class CommittedBatch:
    pairing_ids: list[str] = field(default_factory=list)
    conversation_ids: list[str] = field(default_factory=list)


def commit_daily_batch(db, batch: DailyBatch, *, create_conversation: ConversationCreator, now: datetime) -> CommittedBatch:
    """Write the whole run or nothing. Any exception rolls back and propagates."""
    now = as_utc(now)
    expires_at = as_utc(batch.expires_at)
    committed = CommittedBatch()
    try:
        for member_a, member_b in batch.pairs:
            pairing_id = str(uuid.uuid4())
            conversation_id = create_conversation(db, pairing_id, member_a, member_b, batch.pairing_date)
            if not conversation_id:
                raise RuntimeError(f"Conversation creation returned no reference for pairing {pairing_id}")
            db.execute(
                insert(PAIRINGS).values(
                    id=pairing_id,
                    pairing_date=batch.pairing_date,
                    expires_at=expires_at,
                    member_a=member_a,
                    member_b=member_b,
                    status=PairingStatus.PENDING.value,
                    photo_a=None,
                    photo_b=None,
                    is_artificial_completion=False,
                    is_private=False,
                    companion_conversation_id=str(conversation_id),
                    updated_at=now,
                )
            )
            for member_id, partner_id in ((member_a, member_b), (member_b, member_a)):
                log_pairing_event(
                    db,
                    event_type="pairing_created",
                    pairing_id=pairing_id,
                    member_id=member_id,
                    pairing_date=batch.pairing_date,
                    payload={"partner_id": partner_id},
                )
                notify_pairing_created(
                    db,
                    pairing_id=pairing_id,
                    member_id=member_id,
                    partner_id=partner_id,
                    pairing_date=batch.pairing_date,
                    expires_at=expires_at,
                )
            committed.pairing_ids.append(pairing_id)
            committed.conversation_ids.append(str(conversation_id))

        if batch.waitlist:
            db.execute(
                update(MEMBERS)
                .where(MEMBERS.c.id.in_(batch.waitlist))
                .values(priority_next_pairing=True, waitlisted_on=batch.pairing_date, waitlisted_at=now)
            )
            for member_id in batch.waitlist:
                log_pairing_event(
                    db,
                    event_type="waitlisted",
                    member_id=member_id,
                    pairing_date=batch.pairing_date,
                    payload={"reason": "no_compatible_partner"},
                )

        if batch.matched_ids:
            db.execute(
                update(MEMBERS)
                .where(MEMBERS.c.id.in_(batch.matched_ids))
                .values(priority_next_pairing=False, waitlisted_on=None)
            )

        db.commit()
    except Exception:
        db.rollback()
        logger.error(
            "[MATCHING] daily batch rolled back pairing_date=%s pairs=%s waitlisted=%s",
            batch.pairing_date,
            len(batch.pairs),
            len(batch.waitlist),
        )
        raise

    return committed


def conditional_update(db, pairing_id: str, expected_status: PairingStatus, values: dict[str, Any]) -> bool:
    """Apply ``values`` only if the record still has ``expected_status``. Does not commit."""
    res = db.execute(
        update(PAIRINGS)
        .where(PAIRINGS.c.id == pairing_id, PAIRINGS.c.status == PairingStatus(expected_status).value)
        .values(**values)
    )
    return int(res.rowcount or 0) == 1
