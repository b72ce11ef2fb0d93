"""
Date and Time utilities

This module handles local-day boundaries and the en-GB date formats used in
exports, email bodies and analytics labels.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)


def get_zone(tz_name: str) -> tzinfo:
    """Resolve a zone name ('UTC' or IANA) to a tzinfo"""
    if tz_name == "UTC":
        return timezone.utc
    return ZoneInfo(tz_name)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC

    Naive values are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_day_bounds(day: date, zone: tzinfo) -> tuple[datetime, datetime]:
    """
    Calculate the [start, end) boundaries of a calendar day in a timezone

    Args:
        day: Calendar day
        zone: Timezone the day is interpreted in

    Returns:
        Tuple of (day_start, next_day_start), both timezone-aware
    """
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


def format_gb_date(value: date | datetime) -> str:
    """Format as DD/MM/YYYY"""
    return value.strftime("%d/%m/%Y")


def format_gb_long_date(value: date | datetime) -> str:
    """Format as e.g. 'Monday, 19 October 2026'"""
    return f"{value:%A}, {value.day} {value:%B %Y}"


def format_gb_short_day(value: date | datetime) -> str:
    """Format as e.g. 'Mon 19'"""
    return f"{value:%a} {value.day}"
