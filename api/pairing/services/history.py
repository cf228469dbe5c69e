from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable

from sqlalchemy import select

from ..models import Pairing


def canonical_pair(member_a: str, member_b: str) -> tuple[str, str]:
    return tuple(sorted((str(member_a), str(member_b))))


def recent_pairs_from_rows(rows: Iterable[dict[str, Any]]) -> set[tuple[str, str]]:
    return {canonical_pair(r["member_a"], r["member_b"]) for r in rows}


def fetch_recent_pairs(db, reference_date: date, lookback_days: int = 7) -> set[tuple[str, str]]:
    """Pairs matched in (reference_date - lookback_days, reference_date], any status."""
    since = reference_date - timedelta(days=lookback_days)
    table = Pairing.__table__
    rows = db.execute(
        select(table.c.member_a, table.c.member_b).where(
            table.c.pairing_date > since,
            table.c.pairing_date <= reference_date,
        )
    ).mappings().all()
    return recent_pairs_from_rows(rows)
