from datetime import timedelta

import pytest
from sqlalchemy import select

from pairing import models, repo
from pairing.errors import NotAParticipant, PairingConflict, PairingNotFound, ReminderThrottled
from pairing.services import reminders


def _outbox(db):
    table = models.NotificationOutbox.__table__
    return [dict(r) for r in db.execute(select(table).where(table.c.template_key == "reminder")).mappings().all()]


def test_reminder_is_recorded_and_queued(db, now, make_pairing):
    pid = make_pairing("alice", "bob", status="a_submitted", photo_a="a.jpg")
    out = reminders.send_reminder(db, pid, "alice", "bob", now)

    assert out["delivered"] is True
    row = repo.get_pairing(db, pid)
    assert row["last_reminder_by"] == "alice"
    assert row["last_reminder_at"] is not None
    queued = _outbox(db)
    assert len(queued) == 1
    assert queued[0]["member_id"] == "bob"


def test_second_reminder_within_cooldown_is_throttled(db, now, make_pairing):
    pid = make_pairing("alice", "bob")
    reminders.send_reminder(db, pid, "alice", "bob", now)

    with pytest.raises(ReminderThrottled) as exc:
        reminders.send_reminder(db, pid, "bob", "alice", now + timedelta(minutes=5))
    assert 0 < exc.value.retry_after_seconds <= 10 * 60
    assert repo.get_pairing(db, pid)["last_reminder_by"] == "alice"
    assert len(_outbox(db)) == 1


def test_reminder_allowed_again_after_cooldown(db, now, make_pairing):
    pid = make_pairing("alice", "bob")
    reminders.send_reminder(db, pid, "alice", "bob", now)
    out = reminders.send_reminder(db, pid, "alice", "bob", now + timedelta(minutes=15))
    assert out["delivered"] is True
    assert len(_outbox(db)) == 2


def test_reminder_validation(db, now, make_pairing):
    pid = make_pairing("alice", "bob")
    with pytest.raises(PairingNotFound):
        reminders.send_reminder(db, "missing", "alice", "bob", now)
    with pytest.raises(NotAParticipant):
        reminders.send_reminder(db, pid, "alice", "mallory", now)
    with pytest.raises(PairingConflict):
        reminders.send_reminder(db, pid, "alice", "alice", now)


def test_reminder_for_completed_pairing_is_rejected(db, now, make_pairing):
    pid = make_pairing("alice", "bob", status="completed", photo_a="a", photo_b="b", completed_at=now)
    with pytest.raises(PairingConflict) as exc:
        reminders.send_reminder(db, pid, "alice", "bob", now)
    assert exc.value.reason == "already_completed"


def test_delivery_failure_is_reported_not_raised(db, now, make_pairing, monkeypatch):
    pid = make_pairing("alice", "bob")

    def broken(*args, **kwargs):
        raise RuntimeError("outbox unavailable")

    monkeypatch.setattr(reminders, "notify_reminder", broken)
    out = reminders.send_reminder(db, pid, "alice", "bob", now)

    assert out["delivered"] is False
    assert repo.get_pairing(db, pid)["last_reminder_by"] == "alice"
