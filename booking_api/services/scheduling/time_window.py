# booking_api/services/scheduling/time_window.py
"""
Business-local opening hours -> absolute time windows.

Hours rows use 0=Sunday..6=Saturday. Python's date.isoweekday() is
1=Monday..7=Sunday, so the conversion lives here and nowhere else.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_api.config.settings import get_settings
from booking_api.core.exceptions import (
    InvalidInputError,
    ERR_INVALID_DATE_FORMAT,
    ERR_INVALID_HOURS,
    ERR_INVALID_STARTTIME,
)


@dataclass(frozen=True)
class TimeWindow:
    """Open/close instants of one business day, in business-local time"""
    open_local: datetime
    close_local: datetime

    @property
    def open_utc(self) -> datetime:
        return self.open_local.astimezone(timezone.utc)

    @property
    def close_utc(self) -> datetime:
        return self.close_local.astimezone(timezone.utc)

    def contains(self, start: datetime, end: datetime) -> bool:
        """True when [start, end) lies inside [open, close]"""
        utc = timezone.utc
        return self.open_utc <= start.astimezone(utc) and end.astimezone(utc) <= self.close_utc


class TimeWindowResolver:
    """Resolves opening windows for a business on a given local date"""

    @staticmethod
    def zone_for(business) -> ZoneInfo:
        name = business.timezone or get_settings().DEFAULT_TIMEZONE
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidInputError(f"Invalid business timezone: {name}")

    @staticmethod
    def day_of_week(local_date: date) -> int:
        """0=Sunday .. 6=Saturday"""
        return local_date.isoweekday() % 7

    @staticmethod
    def parse_clock(value: str) -> time:
        """Parse a literal 24-hour "HH:MM" string"""
        parts = (value or "").split(":")
        if len(parts) != 2:
            raise InvalidInputError(ERR_INVALID_HOURS)
        try:
            hour, minute = int(parts[0]), int(parts[1])
        except ValueError:
            raise InvalidInputError(ERR_INVALID_HOURS)
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise InvalidInputError(ERR_INVALID_HOURS)
        return time(hour, minute)

    @staticmethod
    def parse_local_date(value: str) -> date:
        """Parse a YYYY-MM-DD calendar date"""
        try:
            return date.fromisoformat(value)
        except (TypeError, ValueError):
            raise InvalidInputError(ERR_INVALID_DATE_FORMAT)

    @staticmethod
    def parse_local_start(value: str, zone: ZoneInfo) -> datetime:
        """
        Parse an ISO-8601 start time.

        Naive values are business-local wall-clock; values with an offset are
        converted into the business zone.
        """
        if not value or not isinstance(value, str):
            raise InvalidInputError(ERR_INVALID_STARTTIME)
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise InvalidInputError(ERR_INVALID_STARTTIME)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=zone)
        return parsed.astimezone(zone)

    @staticmethod
    def today(business, now_utc: datetime) -> date:
        """Calendar date of `now_utc` in the business zone"""
        return now_utc.astimezone(TimeWindowResolver.zone_for(business)).date()

    @staticmethod
    def resolve(business, local_date: date) -> Optional[TimeWindow]:
        """
        Opening window for `local_date`, or None when the business has no
        hours entry for that weekday (closed, not an error).
        """
        hours = business.hours_for_day(TimeWindowResolver.day_of_week(local_date))
        if hours is None:
            return None

        zone = TimeWindowResolver.zone_for(business)
        open_clock = TimeWindowResolver.parse_clock(hours.open_time)
        close_clock = TimeWindowResolver.parse_clock(hours.close_time)

        return TimeWindow(
            open_local=datetime.combine(local_date, open_clock, tzinfo=zone),
            close_local=datetime.combine(local_date, close_clock, tzinfo=zone),
        )

    @staticmethod
    def step(start: datetime, minutes: int) -> datetime:
        """Advance by elapsed minutes (absolute time, safe across DST changes)"""
        zone = start.tzinfo
        moved = start.astimezone(timezone.utc) + timedelta(minutes=minutes)
        return moved.astimezone(zone) if zone is not None else moved
