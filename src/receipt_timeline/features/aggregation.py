from __future__ import annotations

import logging
from collections.abc import Generator, Sequence
from datetime import datetime
from types import MappingProxyType
from typing import Any, TypeVar

from receipt_timeline.config import AppConfig
from receipt_timeline.features.buckets import (
    BucketCalendar,
    Clock,
    Granularity,
    calendar_for,
    coerce_granularity,
)
from receipt_timeline.features.category_index import CategoryIndex
from receipt_timeline.features.series import BucketSeries, empty_series
from receipt_timeline.io.snapshot import DatasetSnapshot
from receipt_timeline.preprocess.dates import normalize_date
from receipt_timeline.preprocess.labels import is_truthy_flag
from receipt_timeline.tasks import CancellationToken, GenerationCounter

LOGGER = logging.getLogger(__name__)

SENTINEL_YEAR = 1900

CacheKey = tuple[str, Granularity]
SeriesTask = Generator[None, None, "BucketSeries | None"]
T = TypeVar("T")


def trim_padding(values: Sequence[T], padding: int, *, trailing: bool = True) -> list[T]:
    """Drop ``padding`` items from each end when more than ``2 * padding`` remain.

    With ``trailing=False`` only the leading padding is dropped; a walk cut short
    by the safety cap never reached its trailing padding.
    """
    if padding <= 0 or len(values) <= 2 * padding:
        return list(values)
    if not trailing:
        return list(values[padding:])
    return list(values[padding:-padding])


class AggregationEngine:
    """Lazily computes and memoizes bucket series per (category, granularity).

    The engine owns the series cache for the current snapshot/index pair. Every
    :meth:`compute` call advances ``generations``, so a scan still in flight
    from an earlier request abandons itself at its next suspension point.
    """

    def __init__(self, config: AppConfig, *, clock: Clock | None = None) -> None:
        self.config = config
        self.clock = clock
        self.generations = GenerationCounter()
        self.scan_count = 0
        self._snapshot: DatasetSnapshot | None = None
        self._index: CategoryIndex | None = None
        self._cache: dict[CacheKey, BucketSeries] = {}

    @property
    def ready(self) -> bool:
        return self._snapshot is not None and self._index is not None

    def reset(self, snapshot: DatasetSnapshot | None, index: CategoryIndex | None) -> None:
        """Swap in a new snapshot/index pair, clearing the cache and in-flight work."""
        self._snapshot = snapshot
        self._index = index
        self._cache.clear()
        self.generations.advance()

    def cancel(self) -> None:
        self.generations.advance()

    def cached(self, category: str, granularity: Any) -> BucketSeries | None:
        return self._cache.get((category, coerce_granularity(granularity)))

    def cache_keys(self) -> list[CacheKey]:
        return list(self._cache)

    def compute(self, category: str, granularity: Any) -> SeriesTask:
        """Return a cooperative task producing the series for ``category``.

        Raises :class:`~receipt_timeline.io.schema.MissingColumnsError` up front
        when the snapshot lacks a required column.
        """
        resolved_granularity = coerce_granularity(granularity)
        token = self.generations.advance()

        if not category:
            return self._finished(empty_series("", resolved_granularity))
        cached = self._cache.get((category, resolved_granularity))
        if cached is not None:
            return self._finished(cached)
        if self._snapshot is None or self._index is None:
            LOGGER.debug("No snapshot loaded; returning empty series for %r", category)
            return self._finished(empty_series(category, resolved_granularity))

        self._snapshot.resolved.require("category", "date", "row_id")
        return self._compute(self._snapshot, self._index, category, resolved_granularity, token)

    @staticmethod
    def _finished(series: BucketSeries) -> SeriesTask:
        return series
        yield  # pragma: no cover

    def _calendar(self, granularity: Granularity) -> BucketCalendar:
        return calendar_for(granularity, locale=self.config.display.locale, clock=self.clock)

    def _compute(
        self,
        snapshot: DatasetSnapshot,
        index: CategoryIndex,
        category: str,
        granularity: Granularity,
        token: CancellationToken,
    ) -> SeriesTask:
        calendar = self._calendar(granularity)
        chunk_rows = self.config.chunking.scan_chunk_rows

        positions = index.positions_for(category)
        dates = snapshot.values("date")
        identifiers = snapshot.values("row_id")
        archived = snapshot.values("archived") if snapshot.has("archived") else None

        self.scan_count += 1
        counts: dict[str, int] = {}
        row_ids: dict[str, list[Any]] = {}
        first: datetime | None = None
        last: datetime | None = None

        for chunk_start in range(0, len(positions), chunk_rows):
            if chunk_start:
                yield
                if token.cancelled:
                    LOGGER.debug("Abandoned scan of %r after %d rows", category, chunk_start)
                    return None
            for position in positions[chunk_start : chunk_start + chunk_rows]:
                if archived is not None and is_truthy_flag(archived[position]):
                    continue
                instant = normalize_date(dates[position])
                if instant is None or instant.year == SENTINEL_YEAR:
                    continue
                start = calendar.bucket_start(instant)
                key = calendar.bucket_key(start)
                counts[key] = counts.get(key, 0) + 1
                row_ids.setdefault(key, []).append(identifiers[position])
                if first is None or start < first:
                    first = start
                if last is None or start > last:
                    last = start

        if token.cancelled:
            return None

        if first is None or last is None:
            series = empty_series(category, granularity)
        else:
            walked = yield from self._walk(calendar, first, last, counts, token)
            if walked is None:
                return None
            series = self._assemble(category, granularity, calendar, walked, row_ids)

        if token.cancelled:
            return None
        self._cache[(category, granularity)] = series
        return series

    def _walk(
        self,
        calendar: BucketCalendar,
        first: datetime,
        last: datetime,
        counts: dict[str, int],
        token: CancellationToken,
    ) -> Generator[None, None, list[tuple[datetime, str, int]] | None]:
        padding = self.config.series.padding_buckets
        max_buckets = self.config.series.max_buckets
        chunk_buckets = self.config.chunking.walk_chunk_buckets
        range_start = calendar.successor(first, -padding)
        range_end = calendar.successor(last, padding)

        walked: list[tuple[datetime, str, int]] = []
        for period_start in calendar.iter_range(range_start, range_end, max_buckets):
            key = calendar.bucket_key(period_start)
            walked.append((period_start, key, counts.get(key, 0)))
            if len(walked) % chunk_buckets == 0:
                yield
                if token.cancelled:
                    return None

        capped = bool(walked) and walked[-1][0] < range_end
        if capped:
            LOGGER.warning(
                "Bucket walk stopped at safety cap of %d buckets (%s to %s)",
                max_buckets,
                walked[0][1],
                walked[-1][1],
            )
        return trim_padding(walked, padding, trailing=not capped)

    @staticmethod
    def _assemble(
        category: str,
        granularity: Granularity,
        calendar: BucketCalendar,
        walked: list[tuple[datetime, str, int]],
        row_ids: dict[str, list[Any]],
    ) -> BucketSeries:
        keys = tuple(key for _, key, _ in walked)
        counts = tuple(count for _, _, count in walked)
        return BucketSeries(
            category=category,
            granularity=granularity,
            keys=keys,
            labels=tuple(calendar.bucket_label(start) for start, _, _ in walked),
            counts=counts,
            row_ids=MappingProxyType(
                {key: tuple(row_ids[key]) for key in keys if key in row_ids}
            ),
            total=sum(counts),
        )
