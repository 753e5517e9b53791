from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from ..config import get_settings


def venue_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().venue_timezone)


def to_venue_naive(dt: datetime) -> datetime:
    """Normalize to a naive venue-local datetime. Naive input is assumed venue-local."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(venue_tz()).replace(tzinfo=None)


def venue_naive_to_aware(dt: datetime) -> datetime:
    return dt.replace(tzinfo=venue_tz())


def venue_today() -> date:
    return datetime.now(venue_tz()).date()


def at(day: date, moment: time) -> datetime:
    return datetime.combine(day, moment)
