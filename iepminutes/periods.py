"""
Week and month boundaries used to scope the dashboard.

Weeks run Monday through Sunday. A week that straddles two months keeps one
label; a log belongs to the month of its own date.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple


class WeekRange(NamedTuple):
    start: date
    end: date
    label: str

    @property
    def key(self) -> str:
        return self.start.isoformat()


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def week_range(ref=None) -> WeekRange:
    ref = _as_date(ref or date.today())
    mon = ref - timedelta(days=ref.isoweekday() - 1)  # isoweekday: Mon=1 .. Sun=7
    sun = mon + timedelta(days=6)
    label = f"{mon:%b} {mon.day} - {sun:%b} {sun.day}"
    return WeekRange(mon, sun, label)


def week_key(ref) -> str:
    """ISO date of the Monday starting ``ref``'s week."""
    return week_range(ref).key


def month_label(ref=None) -> str:
    return _as_date(ref or date.today()).strftime("%B %Y")


def parse_month_label(label: str) -> date:
    return datetime.strptime(label, "%B %Y").date()


def month_range(ref=None):
    ref   = _as_date(ref or date.today())
    first = ref.replace(day=1)
    if ref.month == 12:
        last = date(ref.year + 1, 1, 1) - timedelta(days=1)
    else:
        last = date(ref.year, ref.month + 1, 1) - timedelta(days=1)
    return first, last


def months_available(logs: Iterable = (), today: date = None) -> list[str]:
    """Current month plus every month holding a log, oldest first."""
    firsts = {_as_date(today or date.today()).replace(day=1)}
    for log in logs:
        firsts.add(log.date.replace(day=1))
    return [month_label(d) for d in sorted(firsts)]


def weeks_in_month(label: str, logs: Iterable = ()) -> list[tuple[str, str]]:
    """(week key, week label) pairs for every week touching the month."""
    first, last = month_range(parse_month_label(label))
    weeks = {}
    for log in logs:
        if month_label(log.date) == label:
            wr = week_range(log.date)
            weeks[wr.key] = wr.label
    cur = week_range(first).start
    while cur <= last:
        wr = week_range(cur)
        weeks[wr.key] = wr.label
        cur += timedelta(days=7)
    return sorted(weeks.items())
