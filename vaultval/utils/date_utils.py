"""Date handling utilities."""

from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from a string, date or datetime.

    Naive datetimes are assumed to be UTC so that entries from different
    sources can be ordered together.

    Args:
        value: ISO string, date, datetime or None

    Returns:
        Timezone-aware datetime, or None if missing or unparseable
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            parsed = date_parser.isoparse(value)
        except ValueError:
            try:
                parsed = date_parser.parse(value)
            except (ValueError, OverflowError):
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_day(value: Any) -> Optional[date]:
    """Truncate a date, datetime or date string to a calendar day (UTC)."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value

    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.astimezone(timezone.utc).date()


def day_key(value: Any) -> str:
    """
    Format a day for use in cache keys (YYYY-MM-DD).

    Missing or unparseable dates map to "today", matching how live
    rates are requested.
    """
    day = to_day(value)
    return day.isoformat() if day is not None else "today"


def days_between(later: Any, earlier: Any) -> int:
    """
    Count whole days from earlier to later.

    Args:
        later: End date or datetime
        earlier: Start date or datetime

    Returns:
        Day difference, or 0 if either date is missing
    """
    end = to_day(later)
    start = to_day(earlier)
    if end is None or start is None:
        return 0
    return (end - start).days
