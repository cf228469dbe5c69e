from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

import pairing.main as m
from pairing import models, repo
from pairing.errors import InvariantViolation
from pairing.services.history import canonical_pair

DAY = date(2026, 3, 10)


def _pairs(db, day=DAY):
    return {canonical_pair(r["member_a"], r["member_b"]) for r in repo.list_pairings_for_date(db, day)}


def test_run_pairs_eligible_members_and_skips_recent_partners(db, now, make_member, make_pairing):
    for mid in ["m1", "m2", "m3", "m4"]:
        make_member(mid)
    make_member("gone", is_active=False)
    make_member("flaky", flake_streak=5)
    make_pairing("m1", "m2", pairing_date=DAY - timedelta(days=1), status="completed", photo_a="a", photo_b="b", completed_at=now)

    out = m.repo_run_daily_matching(DAY, now=now, seed=1234)

    assert out["pairs_created"] == len(out["pairing_ids"])
    assert out["eligible_members"] == 4
    pairs = _pairs(db)
    assert ("m1", "m2") not in pairs
    assert all("gone" not in p and "flaky" not in p for p in pairs)
    assert out["pairs_created"] >= 1


def test_odd_pool_waitlists_one_member_with_priority(db, now, make_member):
    for mid in ["a", "b", "c"]:
        make_member(mid)

    out = m.repo_run_daily_matching(DAY, now=now, seed=7)

    assert out["pairs_created"] == 1
    assert out["waitlisted"] == 1
    waitlisted = [mid for mid, row in repo.get_members(db, ["a", "b", "c"]).items() if row["priority_next_pairing"]]
    assert len(waitlisted) == 1
    assert repo.get_member(db, waitlisted[0])["waitlisted_on"] == DAY


def test_matched_priority_member_flags_are_cleared(db, now, make_member):
    for mid in ["a", "b", "c"]:
        make_member(mid)
    make_member("p", priority_next_pairing=True, waitlisted_on=DAY - timedelta(days=1))

    m.repo_run_daily_matching(DAY, now=now, seed=3)

    assert any("p" in pair for pair in _pairs(db))
    assert repo.get_member(db, "p")["priority_next_pairing"] is False
    assert repo.get_member(db, "p")["waitlisted_on"] is None


def test_insufficient_candidates_is_a_zero_pair_outcome(db, now, make_member):
    make_member("solo")
    out = m.repo_run_daily_matching(DAY, now=now)
    assert out["pairs_created"] == 0
    assert out["insufficient_candidates"] is True
    assert repo.get_member(db, "solo")["priority_next_pairing"] is True


def test_rerun_for_same_day_does_not_write(db, now, make_member):
    for mid in ["a", "b"]:
        make_member(mid)
    m.repo_run_daily_matching(DAY, now=now)
    again = m.repo_run_daily_matching(DAY, now=now)
    assert again["already_ran"] is True
    assert repo.count_pairings_for_date(db, DAY) == 1


def test_default_seed_is_reproducible(db, now, make_member):
    for i in range(9):
        make_member(f"m{i}")
    first = m.repo_run_daily_matching(DAY, now=now)
    first_pairs = _pairs(db)

    for model in (models.FeedEntry, models.NotificationOutbox, models.PairingEvent, models.ChatThread, models.Pairing):
        db.execute(model.__table__.delete())
    db.execute(models.Member.__table__.update().values(priority_next_pairing=False, waitlisted_on=None, waitlisted_at=None))
    db.commit()

    second = m.repo_run_daily_matching(DAY, now=now)
    assert first["seed"] == second["seed"]
    assert _pairs(db) == first_pairs


def test_conversation_failure_leaves_no_partial_day(db, now, make_member):
    for mid in ["a", "b", "c", "d"]:
        make_member(mid)

    def refuse(*args):
        raise RuntimeError("chat unavailable")

    with pytest.raises(RuntimeError):
        m.repo_run_daily_matching(DAY, now=now, create_conversation=refuse)
    assert repo.count_pairings_for_date(db, DAY) == 0
    assert db.execute(select(func.count()).select_from(models.ChatThread.__table__)).scalar() == 0


def test_pairing_deadline_is_local_evening(db, now, make_member):
    for mid in ["a", "b"]:
        make_member(mid)
    out = m.repo_run_daily_matching(DAY, now=now)
    # 22:00 in Los Angeles on 2026-03-10 (PDT, UTC-7).
    assert out["expires_at"] == "2026-03-11T05:00:00+00:00"


def test_duplicate_member_rows_are_fatal(monkeypatch, now):
    row = {"id": "dup", "is_active": True, "last_active_at": now, "flake_streak": 0, "blocked_ids": []}
    monkeypatch.setattr(m.repo, "list_members", lambda db: [row, dict(row)])
    with pytest.raises(InvariantViolation):
        m.repo_run_daily_matching(DAY, now=now)


def test_backfill_for_past_day_uses_that_day_for_eligibility(db, now, make_member, monkeypatch):
    for mid in ["a", "b", "c", "d"]:
        make_member(mid, last_active_at=now - timedelta(hours=20))
    monkeypatch.setattr(m, "now_utc", lambda: now + timedelta(days=30))

    out = m.repo_run_daily_matching(DAY, seed=11)

    assert out["eligible_members"] == 4
    assert out["pairs_created"] == 2
    assert len(_pairs(db)) == 2
