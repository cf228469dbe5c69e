from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from .dates import as_utc


@dataclass(frozen=True)
class MemberProjection:
    id: str
    is_active: bool
    last_active_at: datetime | None
    flake_streak: int = 0
    blocked_ids: frozenset[str] = field(default_factory=frozenset)
    priority_next_pairing: bool = False
    waitlisted_on: date | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MemberProjection":
        blocked = row.get("blocked_ids")
        return cls(
            id=str(row["id"]),
            is_active=bool(row.get("is_active")),
            last_active_at=as_utc(row.get("last_active_at")),
            flake_streak=_to_int(row.get("flake_streak")),
            blocked_ids=frozenset(str(b) for b in blocked) if isinstance(blocked, list) else frozenset(),
            priority_next_pairing=bool(row.get("priority_next_pairing")),
            waitlisted_on=row.get("waitlisted_on"),
        )

    def blocks(self, other_id: str) -> bool:
        return other_id in self.blocked_ids


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        # Unknown streak is treated as over any ceiling.
        return 10**9


def is_eligible(
    member: MemberProjection,
    now: datetime,
    *,
    recency_days: int = 3,
    flake_ceiling: int = 5,
) -> bool:
    if not member.is_active:
        return False
    if member.last_active_at is None:
        return False
    if as_utc(member.last_active_at) < as_utc(now) - timedelta(days=recency_days):
        return False
    return member.flake_streak < flake_ceiling


def filter_eligible(
    members: Iterable[MemberProjection],
    now: datetime,
    *,
    recency_days: int = 3,
    flake_ceiling: int = 5,
) -> list[MemberProjection]:
    return [m for m in members if is_eligible(m, now, recency_days=recency_days, flake_ceiling=flake_ceiling)]
