from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_pairing_date(now: datetime, tz: str = "America/Los_Angeles") -> date:
    return as_utc(now).astimezone(ZoneInfo(tz)).date()


def deadline_for(pairing_date: date, tz: str = "America/Los_Angeles", hour: int = 22) -> datetime:
    local = datetime.combine(pairing_date, time(hour=hour), tzinfo=ZoneInfo(tz))
    return local.astimezone(timezone.utc)
