from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..errors import InvariantViolation, PairingConflict
from .dates import as_utc


class PairingStatus(str, Enum):
    PENDING = "pending"
    A_SUBMITTED = "a_submitted"
    B_SUBMITTED = "b_submitted"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is PairingStatus.COMPLETED


class Side(str, Enum):
    A = "a"
    B = "b"

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A

    @property
    def submitted_status(self) -> PairingStatus:
        return PairingStatus.A_SUBMITTED if self is Side.A else PairingStatus.B_SUBMITTED


ONE_SIDED = frozenset({PairingStatus.A_SUBMITTED, PairingStatus.B_SUBMITTED})


class ArtificialOutcome(str, Enum):
    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"


@dataclass(frozen=True)
class PairingRecord:
    id: str
    pairing_date: date
    expires_at: datetime
    member_a: str
    member_b: str
    status: PairingStatus
    companion_conversation_id: str
    photo_a: str | None = None
    photo_b: str | None = None
    submitted_at_a: datetime | None = None
    submitted_at_b: datetime | None = None
    completed_at: datetime | None = None
    is_artificial_completion: bool = False
    artificial_completion_reason: str | None = None
    is_private: bool = False
    last_reminder_at: datetime | None = None
    last_reminder_by: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PairingRecord":
        try:
            status = PairingStatus(row["status"])
        except ValueError as exc:
            raise InvariantViolation(
                f"Pairing {row.get('id')} has unknown status {row.get('status')!r}",
                reason="malformed_record",
            ) from exc
        return cls(
            id=str(row["id"]),
            pairing_date=row["pairing_date"],
            expires_at=as_utc(row["expires_at"]),
            member_a=str(row["member_a"]),
            member_b=str(row["member_b"]),
            status=status,
            companion_conversation_id=str(row["companion_conversation_id"]),
            photo_a=row.get("photo_a"),
            photo_b=row.get("photo_b"),
            submitted_at_a=as_utc(row.get("submitted_at_a")),
            submitted_at_b=as_utc(row.get("submitted_at_b")),
            completed_at=as_utc(row.get("completed_at")),
            is_artificial_completion=bool(row.get("is_artificial_completion")),
            artificial_completion_reason=row.get("artificial_completion_reason"),
            is_private=bool(row.get("is_private")),
            last_reminder_at=as_utc(row.get("last_reminder_at")),
            last_reminder_by=row.get("last_reminder_by"),
        )

    def side_of(self, member_id: str) -> Side | None:
        if member_id == self.member_a:
            return Side.A
        if member_id == self.member_b:
            return Side.B
        return None

    def member_on(self, side: Side) -> str:
        return self.member_a if side is Side.A else self.member_b

    def photo_on(self, side: Side) -> str | None:
        return self.photo_a if side is Side.A else self.photo_b

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["status"] = self.status.value
        out["pairing_date"] = self.pairing_date.isoformat()
        for key in ("expires_at", "submitted_at_a", "submitted_at_b", "completed_at", "last_reminder_at"):
            out[key] = out[key].isoformat() if out[key] else None
        return out


def check_invariants(record: PairingRecord) -> None:
    problems: list[str] = []
    if record.member_a == record.member_b:
        problems.append("member_a equals member_b")
    completed = record.status is PairingStatus.COMPLETED
    if completed != (record.completed_at is not None):
        problems.append("completed_at does not match status")
    if (record.photo_a is not None) != (record.status in {PairingStatus.A_SUBMITTED, PairingStatus.COMPLETED}):
        problems.append("photo_a does not match status")
    if (record.photo_b is not None) != (record.status in {PairingStatus.B_SUBMITTED, PairingStatus.COMPLETED}):
        problems.append("photo_b does not match status")
    if problems:
        raise InvariantViolation(f"Pairing {record.id} is malformed: {'; '.join(problems)}", reason="malformed_record")


def next_status_on_submit(current: PairingStatus, side: Side) -> PairingStatus:
    if current is PairingStatus.PENDING:
        return side.submitted_status
    if current is side.other.submitted_status:
        return PairingStatus.COMPLETED
    if current is PairingStatus.COMPLETED:
        raise PairingConflict("Pairing is already completed", reason="already_completed")
    raise PairingConflict(f"Side {side.value} already submitted a photo", reason="side_already_submitted")


def plan_submission(record: PairingRecord, side: Side, photo_ref: str, is_private: bool, now: datetime) -> dict[str, Any]:
    new_status = next_status_on_submit(record.status, side)
    now = as_utc(now)
    values: dict[str, Any] = {
        "status": new_status.value,
        f"photo_{side.value}": photo_ref,
        f"submitted_at_{side.value}": now,
        "is_private": bool(record.is_private or is_private),
        "updated_at": now,
    }
    if new_status is PairingStatus.COMPLETED:
        values["completed_at"] = now
    return values


def derive_artificial_reference(source_ref: str, target_side: Side) -> str:
    """Rewrite a submitted photo reference into a distinct reference for the missing side.

    The underlying image is shared; only the file stem and any access token
    change. Example::

        .../user_42_1700000000.jpg?alt=media&token=abc
        -> .../user_42_1700000000_artificial_b.jpg?alt=media&token=artificial-b-<digest>
    """
    side = Side(target_side)
    marker = f"_artificial_{side.value}"
    digest = hashlib.sha256(source_ref.encode("utf-8")).hexdigest()[:12]

    parts = urlsplit(source_ref)
    head, sep, filename = parts.path.rpartition("/")
    stem, dot, ext = filename.rpartition(".")
    filename = f"{stem}{marker}.{ext}" if dot and stem else f"{filename}{marker}"
    path = f"{head}{sep}{filename}"

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        pairs = [(k, f"artificial-{side.value}-{digest}" if k == "token" else v) for k, v in pairs]
        query = urlencode(pairs)

    return urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment))


def can_artificially_complete(status: PairingStatus, now: datetime, expires_at: datetime) -> bool:
    return status in ONE_SIDED and as_utc(now) > as_utc(expires_at)


def plan_artificial_completion(record: PairingRecord, now: datetime, reason: str) -> dict[str, Any] | None:
    """Values for an artificial completion, or None when the record is already completed."""
    if record.status is PairingStatus.COMPLETED:
        return None
    if record.status is PairingStatus.PENDING:
        raise PairingConflict("Neither side submitted; artificial completion does not apply", reason="nobody_submitted")
    if not can_artificially_complete(record.status, now, record.expires_at):
        raise PairingConflict("Submission deadline has not passed", reason="deadline_not_passed")

    submitted = Side.A if record.status is PairingStatus.A_SUBMITTED else Side.B
    missing = submitted.other
    source_ref = record.photo_on(submitted)
    if not source_ref:
        raise InvariantViolation(f"Pairing {record.id} is {record.status.value} without a photo", reason="malformed_record")

    now = as_utc(now)
    return {
        "status": PairingStatus.COMPLETED.value,
        f"photo_{missing.value}": derive_artificial_reference(source_ref, missing),
        f"submitted_at_{missing.value}": now,
        "completed_at": now,
        "is_artificial_completion": True,
        "artificial_completion_reason": reason,
        "updated_at": now,
    }
