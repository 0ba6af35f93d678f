"""
League-local date helpers
"""
from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from nhl_shots.config import get_settings


def league_tz(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or get_settings().league_timezone)


def league_now(tz_name: Optional[str] = None) -> datetime:
    """Current time in the league's time zone"""
    return datetime.now(league_tz(tz_name))


def league_today(tz_name: Optional[str] = None) -> date:
    """Today's date in the league's time zone"""
    return league_now(tz_name).date()


def parse_date(value: Union[str, date, datetime]) -> date:
    """Accept 'YYYY-MM-DD' strings, dates or datetimes"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_utc(value: str) -> datetime:
    """Parse an RFC 3339 timestamp such as '2025-03-01T00:00:00Z' as aware UTC"""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
