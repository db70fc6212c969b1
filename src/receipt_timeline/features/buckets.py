from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date, datetime, timedelta, timezone
from typing import Any, Literal

from receipt_timeline.config import DEFAULT_GRANULARITY, GRANULARITY_CHOICES

Granularity = Literal["week", "month", "year"]
Locale = Literal["fr", "en"]
Clock = Callable[[], date]

MONTH_ABBREVIATIONS: dict[str, tuple[str, ...]] = {
    "fr": (
        "janv.",
        "févr.",
        "mars",
        "avr.",
        "mai",
        "juin",
        "juil.",
        "août",
        "sept.",
        "oct.",
        "nov.",
        "déc.",
    ),
    "en": (
        "Jan",
        "Feb",
        "Mar",
        "Apr",
        "May",
        "Jun",
        "Jul",
        "Aug",
        "Sep",
        "Oct",
        "Nov",
        "Dec",
    ),
}


def coerce_granularity(value: Any) -> Granularity:
    text = str(value or "").strip().lower()
    if text in GRANULARITY_CHOICES:
        return text  # type: ignore[return-value]
    return DEFAULT_GRANULARITY  # type: ignore[return-value]


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _utc_midnight(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


class BucketCalendar:
    """Calendar arithmetic for one granularity.

    Bucket starts are UTC-midnight datetimes. Keys sort lexicographically in
    chronological order within a granularity, so ranges can be walked with
    ``successor`` and compared as strings.
    """

    granularity: Granularity

    def __init__(self, locale: Locale = "fr", clock: Clock | None = None) -> None:
        if locale not in MONTH_ABBREVIATIONS:
            raise ValueError(f"Unsupported label locale: {locale}")
        self.locale = locale
        self.clock = clock or _utc_today

    def _month_name(self, month: int) -> str:
        return MONTH_ABBREVIATIONS[self.locale][month - 1]

    def bucket_start(self, instant: datetime) -> datetime:
        raise NotImplementedError

    def bucket_key(self, period_start: datetime) -> str:
        raise NotImplementedError

    def bucket_label(self, period_start: datetime) -> str:
        raise NotImplementedError

    def successor(self, period_start: datetime, delta: int = 1) -> datetime:
        raise NotImplementedError

    def iter_range(
        self, first: datetime, last: datetime, max_buckets: int
    ) -> Iterator[datetime]:
        """Yield bucket starts from ``first`` through ``last``, at most ``max_buckets``."""
        if first > last:
            return
        current = first
        produced = 0
        while produced < max_buckets:
            yield current
            produced += 1
            if current >= last:
                return
            current = self.successor(current, 1)


class MonthCalendar(BucketCalendar):
    granularity: Granularity = "month"

    def bucket_start(self, instant: datetime) -> datetime:
        instant = instant.astimezone(timezone.utc)
        return _utc_midnight(instant.year, instant.month, 1)

    def bucket_key(self, period_start: datetime) -> str:
        return f"{period_start.year:04d}-{period_start.month:02d}"

    def bucket_label(self, period_start: datetime) -> str:
        return f"{self._month_name(period_start.month)} {period_start.year}"

    def successor(self, period_start: datetime, delta: int = 1) -> datetime:
        linear = period_start.year * 12 + (period_start.month - 1) + delta
        year, month_index = divmod(linear, 12)
        return _utc_midnight(year, month_index + 1, 1)


class YearCalendar(BucketCalendar):
    granularity: Granularity = "year"

    def bucket_start(self, instant: datetime) -> datetime:
        return _utc_midnight(instant.astimezone(timezone.utc).year, 1, 1)

    def bucket_key(self, period_start: datetime) -> str:
        return f"{period_start.year:04d}"

    def bucket_label(self, period_start: datetime) -> str:
        return str(period_start.year)

    def successor(self, period_start: datetime, delta: int = 1) -> datetime:
        return _utc_midnight(period_start.year + delta, 1, 1)


class WeekCalendar(BucketCalendar):
    """ISO weeks: Monday starts, the Thursday of a week decides its ISO year."""

    granularity: Granularity = "week"

    def bucket_start(self, instant: datetime) -> datetime:
        day = instant.astimezone(timezone.utc).date()
        monday = day - timedelta(days=day.weekday())
        return _utc_midnight(monday.year, monday.month, monday.day)

    def bucket_key(self, period_start: datetime) -> str:
        iso_year, iso_week, _ = period_start.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"

    def bucket_label(self, period_start: datetime) -> str:
        label = f"{period_start.day} {self._month_name(period_start.month)}"
        # Year is shown only off the current calendar year, as of render time.
        if period_start.year != self.clock().year:
            label = f"{label} {period_start.year}"
        return label

    def successor(self, period_start: datetime, delta: int = 1) -> datetime:
        return period_start + timedelta(days=7 * delta)


CALENDARS: dict[str, type[BucketCalendar]] = {
    "week": WeekCalendar,
    "month": MonthCalendar,
    "year": YearCalendar,
}


def calendar_for(
    granularity: Any, *, locale: Locale = "fr", clock: Clock | None = None
) -> BucketCalendar:
    return CALENDARS[coerce_granularity(granularity)](locale=locale, clock=clock)
