"""Entry date/time kept as local wall-clock fields plus a UTC offset."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

_MAX_OFFSET = 24 * 60 - 1


def _today() -> dt.date:
    return dt.datetime.now(dt.timezone.utc).date()


class DateTimeModel(BaseModel):
    """Local date and time-of-day with a fixed UTC offset.

    The UTC instant is always derived from the local fields; it cannot be set
    independently.

    Attributes:
        date: Local calendar date.
        hour: Local hour (0-23).
        minute: Local minute (0-59).
        utc_offset_minutes: Offset of local time from UTC in minutes.
    """

    date: dt.date = Field(default_factory=_today)
    hour: int = Field(default=0, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    utc_offset_minutes: int = Field(default=0, ge=-_MAX_OFFSET, le=_MAX_OFFSET)

    @classmethod
    def from_datetime(cls, value: dt.datetime) -> DateTimeModel:
        """Build a model from a datetime; naive values are interpreted as local time."""
        aware = value if value.tzinfo is not None else value.astimezone()
        offset = aware.utcoffset() or dt.timedelta(0)
        return cls(
            date=aware.date(),
            hour=aware.hour,
            minute=aware.minute,
            utc_offset_minutes=int(offset.total_seconds() // 60),
        )

    @property
    def tzinfo(self) -> dt.timezone:
        return dt.timezone(dt.timedelta(minutes=self.utc_offset_minutes))

    @property
    def local(self) -> dt.datetime:
        """Return the aware local datetime shown to the user."""
        return dt.datetime(
            self.date.year,
            self.date.month,
            self.date.day,
            self.hour,
            self.minute,
            tzinfo=self.tzinfo,
        )

    @property
    def utc(self) -> dt.datetime:
        """Return the UTC-normalized instant stored in archives."""
        return self.local.astimezone(dt.timezone.utc)

    def set_date(self, value: dt.date) -> None:
        self.date = value

    def set_hour(self, hour: int) -> None:
        self.hour = min(max(hour, 0), 23)

    def set_minute(self, minute: int) -> None:
        self.minute = min(max(minute, 0), 59)

    def set_offset(self, minutes: int) -> None:
        self.utc_offset_minutes = min(max(minutes, -_MAX_OFFSET), _MAX_OFFSET)

    def set_now(self, now: dt.datetime) -> None:
        """Copy every field from ``now``."""
        fresh = DateTimeModel.from_datetime(now)
        self.date = fresh.date
        self.hour = fresh.hour
        self.minute = fresh.minute
        self.utc_offset_minutes = fresh.utc_offset_minutes


__all__ = ["DateTimeModel"]
