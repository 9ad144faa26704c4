from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo
from .config import settings


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    return now_utc().astimezone(ZoneInfo(settings.timezone))


def parse_hhmm(s: str) -> time:
    """Parse "HH:MM" into a naive time of day. Raises ValueError."""
    try:
        h, m = s.split(":")
        return time(hour=int(h), minute=int(m))
    except (AttributeError, TypeError, ValueError):
        raise ValueError(f"Invalid time: {s!r}, expected HH:MM") from None


def format_hhmm(t: time) -> str:
    return t.strftime("%H:%M")
