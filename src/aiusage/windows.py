from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable

from aiusage.models import UsageEvent, UsageStats, UsageWindow


@dataclass(frozen=True)
class WindowBounds:
    """Half-open ``[start, end)`` ranges for the calendar windows around ``now``."""

    day_start: datetime
    day_end: datetime
    week_start: datetime
    week_end: datetime
    month_start: datetime
    month_end: datetime

    @classmethod
    def at(cls, now: datetime) -> WindowBounds:
        """Boundaries are local midnights, each with the offset in force on its own date.

        A naive ``now`` is read as system local time.
        """
        zone = now.tzinfo
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
        # weeks start on Monday
        week_start = day_start - timedelta(days=day_start.weekday())
        month_start = day_start.replace(day=1)
        if month_start.month == 12:
            month_end = month_start.replace(year=month_start.year + 1, month=1)
        else:
            month_end = month_start.replace(month=month_start.month + 1)
        return cls(
            day_start=_localize(day_start, zone),
            day_end=_localize(day_start + timedelta(days=1), zone),
            week_start=_localize(week_start, zone),
            week_end=_localize(week_start + timedelta(days=7), zone),
            month_start=_localize(month_start, zone),
            month_end=_localize(month_end, zone),
        )


def _localize(wall: datetime, zone: tzinfo | None) -> datetime:
    if zone is None:
        return wall.astimezone()
    return wall.replace(tzinfo=zone)


class _Accumulator:
    def __init__(self) -> None:
        self.events = 0
        self.input_tokens: int | None = None
        self.output_tokens: int | None = None
        self.total_tokens: int | None = None
        self.cached_tokens: int | None = None
        self.request_count = 0

    def add(self, event: UsageEvent) -> None:
        self.events += 1
        self.input_tokens = _add(self.input_tokens, event.input_tokens)
        self.output_tokens = _add(self.output_tokens, event.output_tokens)
        self.total_tokens = _add(self.total_tokens, event.total_tokens)
        self.cached_tokens = _add(self.cached_tokens, event.cached_tokens)
        self.request_count += event.request_count

    def window(self) -> UsageWindow:
        if self.events == 0:
            return UsageWindow()
        return UsageWindow(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.total_tokens,
            cached_tokens=self.cached_tokens,
            request_count=self.request_count,
        )


def _add(left: int | None, right: int | None) -> int | None:
    if left is None:
        return right
    if right is None:
        return left
    return left + right


def normalize_timestamp(value: datetime) -> datetime:
    # naive timestamps from logs are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def summarize(events: Iterable[UsageEvent], now: datetime) -> UsageStats:
    """Bucket events into today, this week, this month and all time.

    Each window is filled from the full event sequence, so a week that spans a
    month boundary can hold events the month does not. Events without a
    timestamp only count toward the total.
    """
    bounds = WindowBounds.at(now)
    today = _Accumulator()
    week = _Accumulator()
    month = _Accumulator()
    total = _Accumulator()

    for event in events:
        total.add(event)
        if event.timestamp is None:
            continue
        ts = normalize_timestamp(event.timestamp)
        if bounds.day_start <= ts < bounds.day_end:
            today.add(event)
        if bounds.week_start <= ts < bounds.week_end:
            week.add(event)
        if bounds.month_start <= ts < bounds.month_end:
            month.add(event)

    return UsageStats(
        today=today.window(),
        this_week=week.window(),
        this_month=month.window(),
        total=total.window(),
    )
