#!/usr/bin/env python3
"""
Window Clock
Whole-calendar-day arithmetic between observation dates and the window bounds
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pandas as pd

from .errors import InvalidWindowError

DateLike = Any  # date, datetime, pandas.Timestamp, numpy.datetime64 or ISO string


def to_date(value: DateLike) -> date:
    """Truncate any supported date-like value to its calendar date"""
    # NaT is a datetime subclass
    if value is None or value is pd.NaT:
        raise ValueError(f"Not a valid date: {value!r}")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    ts = pd.Timestamp(value)
    if pd.isna(ts):
        raise ValueError(f"Not a valid date: {value!r}")
    return ts.date()


def days_between(d1: DateLike, d2: DateLike) -> int:
    """
    Whole calendar days from d1 to d2 (d2 - d1)

    Negative when the arguments are swapped; callers order them.
    """
    return (to_date(d2) - to_date(d1)).days


@dataclass(frozen=True)
class WindowBounds:
    """Observation window [start, end], both ends inclusive"""

    start: date
    end: date

    def __post_init__(self):
        start = to_date(self.start)
        end = to_date(self.end)
        if end < start:
            raise InvalidWindowError(start, end)
        object.__setattr__(self, 'start', start)
        object.__setattr__(self, 'end', end)

    @property
    def total_days(self) -> int:
        return days_between(self.start, self.end)

    def days_remaining(self, timestamp: DateLike) -> int:
        """Days from an observation to the end of the window"""
        return days_between(timestamp, self.end)

    def contains(self, timestamp: DateLike) -> bool:
        return self.start <= to_date(timestamp) <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()} → {self.end.isoformat()} ({self.total_days} days)"
