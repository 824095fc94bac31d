from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current UTC time as a naive datetime truncated to milliseconds.

    MongoDB stores datetimes as naive UTC with millisecond precision; values
    produced here compare equal to what a round trip through the store returns.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as ISO-8601; naive values are treated as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.isoformat(timespec='milliseconds') + 'Z'
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_iso(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (or epoch seconds) into a naive UTC datetime."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        try:
            dt = datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (TypeError, ValueError):
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
