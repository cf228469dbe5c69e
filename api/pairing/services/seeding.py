import random
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, insert

from ..models import ChatThread, FeedEntry, Member, NotificationOutbox, Pairing, PairingEvent
from .dates import as_utc, now_utc

# Child tables first.
RESET_ORDER = [FeedEntry, NotificationOutbox, PairingEvent, ChatThread, Pairing, Member]

USERNAME_WORDS = ["otter", "maple", "comet", "harbor", "juniper", "pixel", "quartz", "saffron", "tundra", "willow"]


def _seed_username(rng: random.Random, idx: int) -> str:
    return f"{rng.choice(USERNAME_WORDS)}_{idx:03d}"


def seed_members(
    db,
    n_members: int = 40,
    reset: bool = False,
    seed: int = 42,
    now: datetime | None = None,
    inactive_rate: float = 0.1,
    flaky_rate: float = 0.05,
    block_rate: float = 0.03,
) -> dict[str, Any]:
    """Insert dev members with a realistic spread of activity, flakiness and blocks."""
    rng = random.Random(seed)
    now = as_utc(now) if now else now_utc()

    if reset:
        for model in RESET_ORDER:
            db.execute(delete(model.__table__))
        db.commit()

    rows: list[dict[str, Any]] = []
    for idx in range(n_members):
        roll = rng.random()
        if roll < inactive_rate:
            is_active, last_active_at = False, now - timedelta(days=rng.randint(1, 30))
        elif roll < inactive_rate * 2:
            # Active flag set but stale; excluded by the recency window.
            is_active, last_active_at = True, now - timedelta(days=rng.randint(4, 20))
        else:
            is_active, last_active_at = True, now - timedelta(minutes=rng.randint(1, 60 * 48))
        flake_streak = rng.randint(5, 9) if rng.random() < flaky_rate else rng.randint(0, 2)
        rows.append(
            {
                "id": str(uuid.uuid4()),
                "username": _seed_username(rng, idx),
                "is_active": is_active,
                "last_active_at": last_active_at,
                "flake_streak": flake_streak,
                "blocked_ids": [],
                "global_feed_opt_in": rng.random() > 0.2,
                "priority_next_pairing": False,
            }
        )

    ids = [r["id"] for r in rows]
    blocks = 0
    for row in rows:
        if len(ids) > 1 and rng.random() < block_rate:
            target = rng.choice([i for i in ids if i != row["id"]])
            row["blocked_ids"] = [target]
            blocks += 1

    if rows:
        db.execute(insert(Member.__table__), rows)
    db.commit()

    return {
        "members_created": len(rows),
        "active": sum(1 for r in rows if r["is_active"]),
        "flaky": sum(1 for r in rows if r["flake_streak"] >= 5),
        "blocks": blocks,
        "reset": reset,
        "seed": seed,
    }
