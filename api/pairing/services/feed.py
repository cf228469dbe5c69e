from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

from sqlalchemy import insert, select

from ..models import FeedEntry
from .. import repo
from .state_machine import PairingRecord, PairingStatus

logger = logging.getLogger(__name__)

FEED = FeedEntry.__table__
GLOBAL_AUDIENCE = "global"


def audiences_for(record: PairingRecord, members: dict[str, dict[str, Any]]) -> list[str]:
    out = [f"member:{record.member_a}", f"member:{record.member_b}"]
    if record.is_private:
        return out
    opted_in = all(bool((members.get(mid) or {}).get("global_feed_opt_in", True)) for mid in (record.member_a, record.member_b))
    if opted_in:
        out.append(GLOBAL_AUDIENCE)
    return out


def publish_completed_pairing(db, record: PairingRecord) -> list[str]:
    """Write denormalized feed entries for a completed pairing. Idempotent per audience."""
    if record.status is not PairingStatus.COMPLETED:
        raise ValueError(f"Pairing {record.id} is not completed")

    members = repo.get_members(db, [record.member_a, record.member_b])
    existing = {
        r[0]
        for r in db.execute(select(FEED.c.audience).where(FEED.c.pairing_id == record.id)).all()
    }
    written: list[str] = []
    for audience in audiences_for(record, members):
        if audience in existing:
            continue
        db.execute(
            insert(FEED).values(
                id=str(uuid.uuid4()),
                pairing_id=record.id,
                audience=audience,
                pairing_date=record.pairing_date,
                member_a=record.member_a,
                member_b=record.member_b,
                username_a=(members.get(record.member_a) or {}).get("username"),
                username_b=(members.get(record.member_b) or {}).get("username"),
                photo_a=record.photo_a,
                photo_b=record.photo_b,
                is_artificial_completion=record.is_artificial_completion,
                artificial_completion_reason=record.artificial_completion_reason,
            )
        )
        written.append(audience)
    return written


def publish_safely(session_factory: Callable[[], Any], record: PairingRecord) -> bool:
    """Publish in its own transaction; failures are logged and never undo the completion."""
    try:
        with session_factory() as db:
            written = publish_completed_pairing(db, record)
            db.commit()
        logger.info("[FEED] published pairing_id=%s audiences=%s", record.id, written)
        return True
    except Exception:
        logger.exception("[FEED] publication failed pairing_id=%s", record.id)
        return False
