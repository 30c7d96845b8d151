from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from ssr_stats.constants import HistoryConstants

def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)

def utc_today() -> date:
    """Current UTC calendar date"""
    return utc_now().date()

def get_midnight_aligned_date(value: Optional[Union[datetime, date]] = None) -> date:
    """
    Align a timestamp to its UTC calendar day

    Args:
        value: Timestamp or date; naive datetimes are treated as UTC. Defaults to now.

    Returns:
        The UTC date the timestamp falls on
    """
    if value is None:
        return utc_today()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value

def get_days_ago_date(days: int, today: Optional[date] = None) -> date:
    """Get the UTC date the given number of days before today"""
    return (today or utc_today()) - timedelta(days=days)

def format_date_minimal(value: date) -> str:
    """Format a date as a history key"""
    return value.strftime(HistoryConstants.DATE_KEY_FORMAT)

def parse_date_key(value: str) -> date:
    """Parse a history key back into a date"""
    return datetime.strptime(value, HistoryConstants.DATE_KEY_FORMAT).date()

def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 upstream timestamp into an aware UTC datetime"""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

def format_duration(seconds: float) -> str:
    """Format a duration for log messages"""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, remainder = divmod(int(seconds), 60)
    return f"{minutes}m {remainder}s"
