"""Derived views over the event collection: the month calendar grid and the upcoming list.

Everything here is a pure function of its arguments and is recomputed on
every call.
"""
from __future__ import annotations

import calendar
import typing as t
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta

from .models import AcademicEvent


@dataclass
class CalendarDay:
    """One cell of the month grid."""
    date: date
    in_month: bool
    is_today: bool = False
    events: list[AcademicEvent] = field(default_factory=list)


def month_bounds(anchor: date) -> tuple[date, date]:
    """Return the first and last day of ``anchor``'s month."""
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]
    return anchor.replace(day=1), anchor.replace(day=last_day)


def shift_month(anchor: date, amount: int) -> date:
    """Return the first day of the month ``amount`` months away from ``anchor``."""
    index = anchor.year * 12 + (anchor.month - 1) + amount
    return date(index // 12, index % 12 + 1, 1)


def group_by_date(events: t.Iterable[AcademicEvent]) -> dict[str, list[AcademicEvent]]:
    """Bucket events by their ``YYYY-MM-DD`` date, keeping collection order."""
    buckets: dict[str, list[AcademicEvent]] = defaultdict(list)
    for event in events:
        buckets[event.date].append(event)
    return dict(buckets)


def calendar_grid(
        events: t.Iterable[AcademicEvent],
        month_anchor: date,
        today: t.Optional[date] = None,
) -> list[CalendarDay]:
    """Build the Sunday-to-Saturday weeks covering ``month_anchor``'s month.

    Days from the neighbouring months that fill the first and last week are
    included with ``in_month=False`` and still carry their own events.
    """
    today = today or date.today()
    first, last = month_bounds(month_anchor)
    # date.weekday(): Monday=0 .. Sunday=6
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    end = last + timedelta(days=(5 - last.weekday()) % 7)

    by_date = group_by_date(events)
    days: list[CalendarDay] = []
    day = start
    while day <= end:
        days.append(
            CalendarDay(
                date=day,
                in_month=day.month == first.month and day.year == first.year,
                is_today=day == today,
                events=list(by_date.get(day.isoformat(), [])),
            )
        )
        day += timedelta(days=1)
    return days


def upcoming_events(
        events: t.Iterable[AcademicEvent],
        today: t.Optional[date] = None,
) -> list[AcademicEvent]:
    """Events dated today or later, earliest first (ties keep collection order)."""
    cutoff = (today or date.today()).isoformat()
    # ISO dates compare correctly as strings; sorted() is stable.
    return sorted((e for e in events if e.date >= cutoff), key=lambda e: e.date)
