from __future__ import annotations

import hashlib
import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Sequence, TypeVar

from ..errors import InvariantViolation
from .eligibility import MemberProjection
from .history import canonical_pair

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MatchResult:
    pairs: list[tuple[str, str]] = field(default_factory=list)
    waitlist: list[str] = field(default_factory=list)
    pool_size: int = 0

    @property
    def insufficient_candidates(self) -> bool:
        return self.pool_size < 2


def seed_for_date(pairing_date: date, salt: str = "") -> int:
    payload = f"{salt}|{pairing_date.isoformat()}"
    h = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return int(h[:16], 16)


def fisher_yates_shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def order_candidates(candidates: Sequence[MemberProjection], rng: random.Random) -> list[MemberProjection]:
    """Priority members first, each tier shuffled independently."""
    priority = [c for c in candidates if c.priority_next_pairing]
    regular = [c for c in candidates if not c.priority_next_pairing]
    return fisher_yates_shuffle(priority, rng) + fisher_yates_shuffle(regular, rng)


def can_pair(m: MemberProjection, n: MemberProjection, recent_pairs: set[tuple[str, str]]) -> bool:
    if m.id == n.id:
        return False
    if m.blocks(n.id) or n.blocks(m.id):
        return False
    return canonical_pair(m.id, n.id) not in recent_pairs


def _assert_unique(candidates: Sequence[MemberProjection]) -> None:
    seen: set[str] = set()
    dupes: set[str] = set()
    for c in candidates:
        if c.id in seen:
            dupes.add(c.id)
        seen.add(c.id)
    if dupes:
        raise InvariantViolation(
            f"Duplicate member ids in candidate pool: {sorted(dupes)}",
            reason="duplicate_candidate",
        )


def greedy_pair(ordered: Sequence[MemberProjection], recent_pairs: set[tuple[str, str]]) -> MatchResult:
    paired: set[str] = set()
    result = MatchResult(pool_size=len(ordered))

    for i, m in enumerate(ordered):
        if m.id in paired:
            continue
        for n in ordered[i + 1:]:
            if n.id in paired:
                continue
            if not can_pair(m, n, recent_pairs):
                continue
            paired.add(m.id)
            paired.add(n.id)
            result.pairs.append((m.id, n.id))
            break

    result.waitlist = [m.id for m in ordered if m.id not in paired]
    return result


def match_members(
    candidates: Sequence[MemberProjection],
    recent_pairs: set[tuple[str, str]] | None = None,
    seed: int | None = None,
) -> MatchResult:
    _assert_unique(candidates)
    recent_pairs = recent_pairs or set()

    if len(candidates) < 2:
        logger.info("[MATCHING] insufficient candidates pool_size=%s", len(candidates))
        return MatchResult(pairs=[], waitlist=[c.id for c in candidates], pool_size=len(candidates))

    rng = random.Random(seed)
    ordered = order_candidates(candidates, rng)
    result = greedy_pair(ordered, recent_pairs)
    logger.info(
        "[MATCHING] pool_size=%s pairs=%s waitlisted=%s",
        result.pool_size,
        len(result.pairs),
        len(result.waitlist),
    )
    return result
