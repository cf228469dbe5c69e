import uuid
from datetime import date
from typing import Any

from sqlalchemy import func, insert, or_, select

from .models import ChatThread, Member, Pairing, PairingEvent
from .services.dates import as_utc

MEMBERS = Member.__table__
PAIRINGS = Pairing.__table__
THREADS = ChatThread.__table__
EVENTS = PairingEvent.__table__


def get_member(db, member_id: str) -> dict[str, Any] | None:
    row = db.execute(select(MEMBERS).where(MEMBERS.c.id == member_id)).mappings().first()
    return dict(row) if row else None


def get_members(db, member_ids: list[str]) -> dict[str, dict[str, Any]]:
    if not member_ids:
        return {}
    rows = db.execute(select(MEMBERS).where(MEMBERS.c.id.in_(member_ids))).mappings().all()
    return {str(r["id"]): dict(r) for r in rows}


def list_members(db, active_only: bool = True) -> list[dict[str, Any]]:
    stmt = select(MEMBERS)
    if active_only:
        stmt = stmt.where(MEMBERS.c.is_active.is_(True))
    return [dict(r) for r in db.execute(stmt.order_by(MEMBERS.c.id)).mappings().all()]


def get_pairing(db, pairing_id: str) -> dict[str, Any] | None:
    row = db.execute(select(PAIRINGS).where(PAIRINGS.c.id == pairing_id)).mappings().first()
    return dict(row) if row else None


def count_pairings_for_date(db, pairing_date: date) -> int:
    return int(
        db.execute(select(func.count()).select_from(PAIRINGS).where(PAIRINGS.c.pairing_date == pairing_date)).scalar()
        or 0
    )


def list_member_pairings_for_date(db, member_id: str, pairing_date: date) -> list[dict[str, Any]]:
    rows = db.execute(
        select(PAIRINGS)
        .where(
            PAIRINGS.c.pairing_date == pairing_date,
            or_(PAIRINGS.c.member_a == member_id, PAIRINGS.c.member_b == member_id),
        )
        .order_by(PAIRINGS.c.created_at.desc())
    ).mappings().all()
    return [dict(r) for r in rows]


def list_pairing_history(db, member_id: str, limit: int = 20) -> list[dict[str, Any]]:
    rows = db.execute(
        select(PAIRINGS)
        .where(
            PAIRINGS.c.status == "completed",
            or_(PAIRINGS.c.member_a == member_id, PAIRINGS.c.member_b == member_id),
        )
        .order_by(PAIRINGS.c.pairing_date.desc(), PAIRINGS.c.completed_at.desc())
        .limit(max(1, min(int(limit), 100)))
    ).mappings().all()
    return [dict(r) for r in rows]


def list_overdue_one_sided(db, now) -> list[str]:
    rows = db.execute(
        select(PAIRINGS.c.id)
        .where(
            PAIRINGS.c.status.in_(["a_submitted", "b_submitted"]),
            PAIRINGS.c.expires_at < as_utc(now),
        )
        .order_by(PAIRINGS.c.expires_at, PAIRINGS.c.id)
    ).all()
    return [str(r[0]) for r in rows]


def list_pairings_for_date(db, pairing_date: date) -> list[dict[str, Any]]:
    rows = db.execute(
        select(PAIRINGS).where(PAIRINGS.c.pairing_date == pairing_date).order_by(PAIRINGS.c.created_at)
    ).mappings().all()
    return [dict(r) for r in rows]


def count_events_for_date(db, pairing_date: date) -> dict[str, int]:
    rows = db.execute(
        select(EVENTS.c.event_type, func.count().label("c"))
        .where(EVENTS.c.pairing_date == pairing_date)
        .group_by(EVENTS.c.event_type)
    ).mappings().all()
    return {r["event_type"]: int(r["c"]) for r in rows}


def create_companion_conversation(db, pairing_id: str, member_a: str, member_b: str, pairing_date: date) -> str:
    """Creates the chat thread for a pairing inside the caller's transaction."""
    a, b = sorted([member_a, member_b])
    thread_id = str(uuid.uuid4())
    db.execute(
        insert(THREADS).values(
            id=thread_id,
            pairing_id=pairing_id,
            pairing_date=pairing_date,
            participant_a_id=a,
            participant_b_id=b,
        )
    )
    return thread_id


def get_thread_for_pairing(db, pairing_id: str) -> dict[str, Any] | None:
    row = db.execute(select(THREADS).where(THREADS.c.pairing_id == pairing_id)).mappings().first()
    return dict(row) if row else None
