import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import insert, select

from ..models import NotificationOutbox
from .dates import as_utc

OUTBOX = NotificationOutbox.__table__


def build_idempotency_key(*, template_key: str, pairing_id: str, member_id: str, suffix: str = "") -> str:
    key = f"{template_key}:{pairing_id}:{member_id}"
    return f"{key}:{suffix}" if suffix else key


def enqueue_notification(
    db,
    *,
    member_id: str,
    template_key: str,
    payload: dict[str, Any],
    idempotency_key: str,
    scheduled_for: datetime | None = None,
) -> dict[str, Any]:
    """Queue a notification for the delivery worker inside the caller's transaction.

    A second call with the same idempotency key returns the existing row.
    """
    existing = db.execute(select(OUTBOX).where(OUTBOX.c.idempotency_key == idempotency_key)).mappings().first()
    if existing:
        return dict(existing)

    values = {
        "id": str(uuid.uuid4()),
        "member_id": member_id,
        "template_key": template_key,
        "payload": payload,
        "idempotency_key": idempotency_key,
        "status": "queued",
        "scheduled_for": as_utc(scheduled_for),
    }
    db.execute(insert(OUTBOX).values(**values))
    return values


def notify_pairing_created(db, *, pairing_id: str, member_id: str, partner_id: str, pairing_date, expires_at: datetime) -> None:
    enqueue_notification(
        db,
        member_id=member_id,
        template_key="pairing_created",
        payload={
            "pairing_id": pairing_id,
            "partner_id": partner_id,
            "pairing_date": str(pairing_date),
            "expires_at": as_utc(expires_at).isoformat(),
        },
        idempotency_key=build_idempotency_key(template_key="pairing_created", pairing_id=pairing_id, member_id=member_id),
    )


def notify_partner_submitted(db, *, pairing_id: str, member_id: str, submitter_id: str) -> None:
    enqueue_notification(
        db,
        member_id=member_id,
        template_key="partner_submitted",
        payload={"pairing_id": pairing_id, "submitter_id": submitter_id, "urgent": True},
        idempotency_key=build_idempotency_key(template_key="partner_submitted", pairing_id=pairing_id, member_id=member_id),
    )


def notify_pairing_completed(db, *, pairing_id: str, member_ids: list[str], is_artificial: bool) -> None:
    for member_id in member_ids:
        enqueue_notification(
            db,
            member_id=member_id,
            template_key="pairing_completed",
            payload={"pairing_id": pairing_id, "is_artificial_completion": is_artificial},
            idempotency_key=build_idempotency_key(template_key="pairing_completed", pairing_id=pairing_id, member_id=member_id),
        )


def notify_reminder(db, *, pairing_id: str, from_member_id: str, to_member_id: str, sent_at: datetime) -> dict[str, Any]:
    return enqueue_notification(
        db,
        member_id=to_member_id,
        template_key="reminder",
        payload={"pairing_id": pairing_id, "sender_id": from_member_id},
        idempotency_key=build_idempotency_key(
            template_key="reminder",
            pairing_id=pairing_id,
            member_id=to_member_id,
            suffix=as_utc(sent_at).strftime("%Y%m%dT%H%M%S"),
        ),
        scheduled_for=sent_at,
    )
