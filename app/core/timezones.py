from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from app.core.errors import InvalidInputError

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def parse_timezone(name: str | None) -> ZoneInfo:
    if not name:
        raise InvalidInputError("timezone is required")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidInputError(f"Unknown timezone: {name}")

def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid date (expected YYYY-MM-DD): {value}")

def parse_instant(value: str) -> datetime:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise InvalidInputError(f"Invalid slot start: {value}")
    if dt.tzinfo is None:
        raise InvalidInputError("Slot start must carry a UTC offset")
    return dt.astimezone(timezone.utc)

def day_of_week(d: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (d.weekday() + 1) % 7

def local_midnight(d: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz)

def local_day_bounds_utc(d: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[start, next midnight) of a local calendar day, as UTC instants."""
    start = local_midnight(d, tz).astimezone(timezone.utc)
    end = local_midnight(d + timedelta(days=1), tz).astimezone(timezone.utc)
    return start, end

def to_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

def get_clock():
    return utc_now
