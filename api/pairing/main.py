import logging
import time
from datetime import date, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from . import repo
from .config import (
    ARTIFICIAL_COMPLETION_REASON,
    CORS_ORIGINS,
    ELIGIBILITY_RECENCY_DAYS,
    FLAKE_STREAK_CEILING,
    HISTORY_LOOKBACK_DAYS,
    MATCH_SEED_SALT,
    PAIRING_DEADLINE_HOUR,
    PAIRING_TIMEZONE,
    REMINDER_COOLDOWN_MINUTES,
)
from .database import SessionLocal, init_db
from .routes import include_modular_routers
from .services import lifecycle, recovery, reminders
from .services.committer import ConversationCreator, DailyBatch, commit_daily_batch
from .services.dates import as_utc, deadline_for, get_pairing_date, now_utc
from .services.eligibility import MemberProjection, filter_eligible
from .services.feed import publish_safely
from .services.history import fetch_recent_pairs
from .services.matching import match_members, seed_for_date
from .services.state_machine import PairingRecord, PairingStatus

logger = logging.getLogger(__name__)

app = FastAPI(title="Daily Pairing API")
include_modular_routers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
                db.commit()
            return
        except OperationalError as exc:
            last_err = exc
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    init_db()


def _pairing_payload(record: PairingRecord, member_id: str | None = None) -> dict[str, Any]:
    out = record.to_dict()
    if member_id:
        side = record.side_of(member_id)
        if side is not None:
            out["my_side"] = side.value
            out["partner_id"] = record.member_on(side.other)
            out["my_photo_submitted"] = record.photo_on(side) is not None
            out["partner_photo_submitted"] = record.photo_on(side.other) is not None
    return out


def repo_run_daily_matching(
    reference_date: date | None = None,
    *,
    now: datetime | None = None,
    seed: int | None = None,
    create_conversation: ConversationCreator | None = None,
) -> dict[str, Any]:
    if now is not None:
        now = as_utc(now)
    elif reference_date is not None and reference_date != get_pairing_date(now_utc(), PAIRING_TIMEZONE):
        # Backfill: judge eligibility as of the start of that pairing day.
        now = deadline_for(reference_date, PAIRING_TIMEZONE, 0)
    else:
        now = now_utc()
    pairing_date = reference_date or get_pairing_date(now, PAIRING_TIMEZONE)
    expires_at = deadline_for(pairing_date, PAIRING_TIMEZONE, PAIRING_DEADLINE_HOUR)
    if seed is None:
        seed = seed_for_date(pairing_date, MATCH_SEED_SALT)

    with SessionLocal() as db:
        existing = repo.count_pairings_for_date(db, pairing_date)
        if existing:
            logger.warning("[MATCHING] pairings already exist pairing_date=%s count=%s", pairing_date, existing)
            return {
                "pairing_date": str(pairing_date),
                "pairs_created": 0,
                "waitlisted": 0,
                "already_ran": True,
                "message": "Pairings already exist",
            }

        members = [MemberProjection.from_row(r) for r in repo.list_members(db)]
        eligible = filter_eligible(
            members,
            now,
            recency_days=ELIGIBILITY_RECENCY_DAYS,
            flake_ceiling=FLAKE_STREAK_CEILING,
        )
        recent_pairs = fetch_recent_pairs(db, pairing_date, HISTORY_LOOKBACK_DAYS)
        result = match_members(eligible, recent_pairs, seed=seed)

        batch = DailyBatch(
            pairing_date=pairing_date,
            expires_at=expires_at,
            pairs=list(result.pairs),
            waitlist=list(result.waitlist),
        )
        committed = commit_daily_batch(
            db,
            batch,
            create_conversation=create_conversation or repo.create_companion_conversation,
            now=now,
        )

    logger.info(
        "[MATCHING] daily run pairing_date=%s members=%s eligible=%s pairs=%s waitlisted=%s",
        pairing_date,
        len(members),
        len(eligible),
        len(result.pairs),
        len(result.waitlist),
    )
    return {
        "pairing_date": str(pairing_date),
        "pairs_created": len(committed.pairing_ids),
        "waitlisted": len(result.waitlist),
        "insufficient_candidates": result.insufficient_candidates,
        "already_ran": False,
        "eligible_members": len(eligible),
        "recent_pairs": len(recent_pairs),
        "seed": seed,
        "expires_at": expires_at.isoformat(),
        "pairing_ids": committed.pairing_ids,
    }


def repo_submit_photo(
    pairing_id: str,
    member_id: str,
    photo_ref: str,
    is_private: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    with SessionLocal() as db:
        record = lifecycle.submit_photo(db, pairing_id, member_id, photo_ref, is_private, now or now_utc())
    if record.status is PairingStatus.COMPLETED:
        publish_safely(SessionLocal, record)
    return _pairing_payload(record, member_id)


def repo_get_current_pairing(member_id: str, now: datetime | None = None) -> dict[str, Any] | None:
    with SessionLocal() as db:
        record = lifecycle.get_current_pairing(db, member_id, now or now_utc(), PAIRING_TIMEZONE)
    return _pairing_payload(record, member_id) if record else None


def repo_run_recovery(now: datetime | None = None, dry_run: bool = False) -> dict[str, Any]:
    report = recovery.run_recovery(
        SessionLocal,
        now or now_utc(),
        dry_run=dry_run,
        reason=ARTIFICIAL_COMPLETION_REASON,
    )
    return report.to_dict()


def repo_send_reminder(
    pairing_id: str,
    from_member_id: str,
    to_member_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    with SessionLocal() as db:
        return reminders.send_reminder(
            db,
            pairing_id,
            from_member_id,
            to_member_id,
            now or now_utc(),
            cooldown_minutes=REMINDER_COOLDOWN_MINUTES,
        )


def repo_list_pairing_history(member_id: str, limit: int = 20) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = repo.list_pairing_history(db, member_id, limit=limit)
    return [_pairing_payload(PairingRecord.from_row(r), member_id) for r in rows]


def repo_day_summary(pairing_date: date) -> dict[str, Any]:
    with SessionLocal() as db:
        rows = repo.list_pairings_for_date(db, pairing_date)
        event_counts = repo.count_events_for_date(db, pairing_date)

    status_counts: dict[str, int] = {}
    artificial = 0
    for row in rows:
        st = row["status"]
        status_counts[st] = status_counts.get(st, 0) + 1
        if row.get("is_artificial_completion"):
            artificial += 1

    return {
        "pairing_date": str(pairing_date),
        "total_pairings": len(rows),
        "status_counts": status_counts,
        "artificial_completions": artificial,
        "event_counts": event_counts,
        "pairings": [PairingRecord.from_row(r).to_dict() for r in rows],
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
