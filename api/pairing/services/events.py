import json
import uuid
from typing import Any

from sqlalchemy import text


def log_pairing_event(
    db,
    *,
    event_type: str,
    pairing_id: str | None = None,
    member_id: str | None = None,
    pairing_date=None,
    payload: dict[str, Any] | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO pairing_event (id, pairing_id, member_id, pairing_date, event_type, payload)
            VALUES (:id, :pairing_id, :member_id, :pairing_date, :event_type, :payload)
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "pairing_id": pairing_id,
            "member_id": member_id,
            "pairing_date": pairing_date.isoformat() if pairing_date else None,
            "event_type": event_type,
            "payload": json.dumps(payload, default=str),
        },
    )
