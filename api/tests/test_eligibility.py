from datetime import datetime, timedelta, timezone

from pairing.services.eligibility import MemberProjection, filter_eligible, is_eligible

NOW = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)


def _member(member_id="m1", **kw):
    base = {"id": member_id, "is_active": True, "last_active_at": NOW - timedelta(hours=1), "flake_streak": 0}
    base.update(kw)
    return MemberProjection(**base)


def test_active_recent_reliable_member_is_eligible():
    assert is_eligible(_member(), NOW)


def test_inactive_member_is_excluded():
    assert not is_eligible(_member(is_active=False), NOW)


def test_recency_window_boundary():
    assert is_eligible(_member(last_active_at=NOW - timedelta(days=3)), NOW)
    assert not is_eligible(_member(last_active_at=NOW - timedelta(days=3, seconds=1)), NOW)


def test_flake_streak_ceiling_is_exclusive():
    assert is_eligible(_member(flake_streak=4), NOW)
    assert not is_eligible(_member(flake_streak=5), NOW)


def test_missing_activity_fails_closed():
    assert not is_eligible(_member(last_active_at=None), NOW)


def test_from_row_with_garbage_streak_fails_closed():
    member = MemberProjection.from_row(
        {"id": "x", "is_active": True, "last_active_at": NOW, "flake_streak": "lots", "blocked_ids": None}
    )
    assert member.blocked_ids == frozenset()
    assert not is_eligible(member, NOW)


def test_from_row_normalizes_naive_timestamps():
    member = MemberProjection.from_row(
        {"id": "x", "is_active": 1, "last_active_at": datetime(2026, 3, 10, 17, 0), "flake_streak": 0}
    )
    assert member.last_active_at.tzinfo is not None
    assert is_eligible(member, NOW)


def test_filter_eligible_respects_custom_thresholds():
    members = [
        _member("a", last_active_at=NOW - timedelta(days=5)),
        _member("b", flake_streak=2),
        _member("c"),
    ]
    out = filter_eligible(members, NOW, recency_days=7, flake_ceiling=2)
    assert [m.id for m in out] == ["a", "c"]
