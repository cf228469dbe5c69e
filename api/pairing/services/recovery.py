"""Artificial completion of one-sided pairings whose deadline has passed.

Each overdue record is handled in its own session so one failure never
touches another record. Fully-pending records are never selected.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from .. import config, repo
from ..errors import PairingConflict
from .dates import as_utc
from .feed import publish_safely
from .lifecycle import artificially_complete, load_pairing
from .state_machine import ArtificialOutcome, can_artificially_complete

logger = logging.getLogger(__name__)

COMPLETED = "completed"
SKIPPED = "skipped"
FAILED = "failed"
WOULD_COMPLETE = "would_complete"


@dataclass
class RecoveryReport:
    reference_time: datetime
    dry_run: bool = False
    outcomes: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    def count(self, outcome: str) -> int:
        return sum(1 for v in self.outcomes.values() if v == outcome)

    @property
    def completed(self) -> int:
        return self.count(COMPLETED)

    @property
    def skipped(self) -> int:
        return self.count(SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_time": self.reference_time.isoformat(),
            "dry_run": self.dry_run,
            "scanned": len(self.outcomes),
            "completed": self.completed,
            "skipped": self.skipped,
            "failed": self.failed,
            "would_complete": self.count(WOULD_COMPLETE),
            "outcomes": dict(self.outcomes),
            "errors": dict(self.errors),
        }


def _recover_one(session_factory: Callable[[], Any], pairing_id: str, now: datetime, reason: str, dry_run: bool) -> str:
    with session_factory() as db:
        if dry_run:
            record = load_pairing(db, pairing_id)
            if can_artificially_complete(record.status, now, record.expires_at):
                return WOULD_COMPLETE
            return SKIPPED
        try:
            outcome, record = artificially_complete(db, pairing_id, now, reason)
        except PairingConflict as exc:
            logger.info("[RECOVERY] skipped pairing_id=%s reason=%s", pairing_id, exc.reason)
            return SKIPPED

    if outcome is ArtificialOutcome.ALREADY_COMPLETED:
        return SKIPPED
    publish_safely(session_factory, record)
    return COMPLETED


def run_recovery(
    session_factory: Callable[[], Any],
    now: datetime,
    *,
    dry_run: bool = False,
    reason: str | None = None,
) -> RecoveryReport:
    now = as_utc(now)
    reason = reason or config.ARTIFICIAL_COMPLETION_REASON
    report = RecoveryReport(reference_time=now, dry_run=dry_run)

    with session_factory() as db:
        overdue = repo.list_overdue_one_sided(db, now)
    logger.info("[RECOVERY] scanning overdue one-sided pairings count=%s dry_run=%s", len(overdue), dry_run)

    for pairing_id in overdue:
        try:
            report.outcomes[pairing_id] = _recover_one(session_factory, pairing_id, now, reason, dry_run)
        except Exception as exc:
            logger.exception("[RECOVERY] failed pairing_id=%s", pairing_id)
            report.outcomes[pairing_id] = FAILED
            report.errors[pairing_id] = str(exc)

    logger.info(
        "[RECOVERY] done completed=%s skipped=%s failed=%s would_complete=%s",
        report.completed,
        report.skipped,
        report.failed,
        report.count(WOULD_COMPLETE),
    )
    return report
