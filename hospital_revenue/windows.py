"""Reporting windows expressed in the single configured reporting timezone."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Literal, Optional, Tuple

Period = Literal["daily", "weekly", "monthly", "yearly"]
PERIODS: Tuple[str, ...] = ("daily", "weekly", "monthly", "yearly")


@dataclass(frozen=True)
class ReportingWindow:
    """Calendar days ``start`` to ``end`` inclusive in ``tz``."""

    start: date
    end: date
    tz: tzinfo

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    def bounds(self) -> Tuple[datetime, datetime]:
        """Half-open ``[start 00:00, day after end 00:00)`` interval."""

        lower = datetime.combine(self.start, time.min, tzinfo=self.tz)
        upper = datetime.combine(self.end + timedelta(days=1), time.min, tzinfo=self.tz)
        return lower, upper

    def bounds_utc(self) -> Tuple[str, str]:
        lower, upper = self.bounds()
        return (
            lower.astimezone(timezone.utc).isoformat(),
            upper.astimezone(timezone.utc).isoformat(),
        )

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        lower, upper = self.bounds()
        return lower <= moment < upper

    def days(self) -> int:
        return (self.end - self.start).days + 1


def today_in(tz: tzinfo, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).date()


def day_window(day: date, tz: tzinfo) -> ReportingWindow:
    return ReportingWindow(start=day, end=day, tz=tz)


def period_window(period: str, today: date, tz: tzinfo) -> ReportingWindow:
    """Return the window a report period covers relative to ``today``.

    Weekly runs Monday to Sunday of the current week; monthly and yearly run
    from the first day of the period up to ``today``.
    """

    if period == "daily":
        return ReportingWindow(start=today, end=today, tz=tz)
    if period == "weekly":
        monday = today - timedelta(days=today.weekday())
        return ReportingWindow(start=monday, end=monday + timedelta(days=6), tz=tz)
    if period == "monthly":
        return ReportingWindow(start=today.replace(day=1), end=today, tz=tz)
    if period == "yearly":
        return ReportingWindow(start=date(today.year, 1, 1), end=today, tz=tz)
    raise ValueError(f"Unknown period '{period}'; expected one of {', '.join(PERIODS)}")


__all__ = [
    "PERIODS",
    "Period",
    "ReportingWindow",
    "day_window",
    "period_window",
    "today_in",
]
