from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import pandas as pd

from receipt_timeline.features.buckets import Granularity


@dataclass(frozen=True)
class BucketSeries:
    """Contiguous, gap-free bucket counts for one (category, granularity).

    ``row_ids`` maps each non-empty bucket key to the identifiers of the rows
    counted in it, in dataset order.
    """

    category: str
    granularity: Granularity
    keys: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    counts: tuple[int, ...] = ()
    row_ids: Mapping[str, tuple[Any, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    total: int = 0

    def __post_init__(self) -> None:
        if not len(self.keys) == len(self.labels) == len(self.counts):
            raise ValueError(
                "bucket series sequences must be parallel: "
                f"keys={len(self.keys)} labels={len(self.labels)} counts={len(self.counts)}"
            )
        if any(count < 0 for count in self.counts):
            raise ValueError("bucket counts must be non-negative")
        if sum(self.counts) != self.total:
            raise ValueError(f"total {self.total} does not match sum of counts {sum(self.counts)}")

    @property
    def is_empty(self) -> bool:
        return not self.keys

    def count_for(self, key: str) -> int:
        return len(self.row_ids.get(key, ()))

    def label_for(self, key: str) -> str | None:
        try:
            return self.labels[self.keys.index(key)]
        except ValueError:
            return None

    def row_ids_for(self, key: str) -> list[Any]:
        return list(self.row_ids.get(key, ()))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "bucket_key": list(self.keys),
                "label": list(self.labels),
                "count": list(self.counts),
            }
        )

    def summary(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "granularity": self.granularity,
            "total": int(self.total),
            "n_buckets": len(self.keys),
            "first_key": self.keys[0] if self.keys else None,
            "last_key": self.keys[-1] if self.keys else None,
        }


def empty_series(category: str, granularity: Granularity) -> BucketSeries:
    return BucketSeries(category=category, granularity=granularity)


def row_ids_for_bucket(series: BucketSeries | None, key: str) -> list[Any]:
    """Identifiers of the rows counted in ``key``; empty for unknown keys."""
    if series is None:
        return []
    return series.row_ids_for(key)
