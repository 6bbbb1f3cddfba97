"""
ISO week windows in local time.

A window runs from Monday 00:00:00.000 to Sunday 23:59:59.999 (inclusive)
and is used both as the since/until bounds of the worklog query and as the
post-filter for detail reports.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta, MO

END_OF_DAY = time(23, 59, 59, 999000)


def _local(d: date, t: time) -> datetime:
    """Attach the local timezone (as of that date) to a wall-clock date/time."""
    return datetime.combine(d, t).astimezone()


def to_millis(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


@dataclass(frozen=True)
class TimeWindow:
    """Closed [start, end] interval of aware local datetimes."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"janela inválida: início {self.start} posterior ao fim {self.end}")

    @property
    def start_ms(self) -> int:
        return to_millis(self.start)

    @property
    def end_ms(self) -> int:
        return to_millis(self.end)

    @property
    def year(self) -> int:
        return self.start.isocalendar()[0]

    @property
    def week(self) -> int:
        return self.start.isocalendar()[1]

    def contains(self, dt: datetime) -> bool:
        return self.start <= dt <= self.end

    def describe(self) -> str:
        return (
            f"semana {self.week}/{self.year}: "
            f"{self.start.date().isoformat()} a {self.end.date().isoformat()}"
        )


def monday_window(monday: date) -> TimeWindow:
    """Window covering the seven days starting at the given Monday."""
    sunday = monday + timedelta(days=6)
    return TimeWindow(_local(monday, time.min), _local(sunday, END_OF_DAY))


def week_window(week: int, year: int) -> TimeWindow:
    """Return the window of ISO week `week` of ISO year `year`.

    Week 1 is the week containing the year's first Thursday, so its Monday
    may fall in the previous calendar year.

    Raises:
        ValueError: if the week does not exist in that ISO year.
    """
    try:
        monday = date.fromisocalendar(year, week, 1)
    except ValueError:
        raise ValueError(f"semana ISO inválida: {week}/{year}")
    return monday_window(monday)


def last_week_window(now: Optional[datetime] = None) -> TimeWindow:
    """Return the Monday-Sunday window preceding the ISO week of `now`."""
    today = (now or datetime.now()).date()
    this_monday = today + relativedelta(weekday=MO(-1))
    return monday_window(this_monday - timedelta(days=7))


def current_iso_week(now: Optional[datetime] = None) -> Tuple[int, int]:
    """Return (iso_year, iso_week) for `now` (defaults to the local clock)."""
    iso = (now or datetime.now()).date().isocalendar()
    return iso[0], iso[1]
