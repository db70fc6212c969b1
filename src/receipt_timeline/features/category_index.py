from __future__ import annotations

import logging
from collections.abc import Generator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from receipt_timeline.io.snapshot import DatasetSnapshot
from receipt_timeline.preprocess.labels import normalize_label
from receipt_timeline.tasks import CancellationToken

LOGGER = logging.getLogger(__name__)

DEFAULT_INDEX_CHUNK_ROWS = 8000


@dataclass(frozen=True)
class CategoryIndex:
    """Category label -> row positions (ascending) for one snapshot."""

    positions: Mapping[str, tuple[int, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __contains__(self, category: object) -> bool:
        return category in self.positions

    def __len__(self) -> int:
        return len(self.positions)

    def positions_for(self, category: str) -> tuple[int, ...]:
        return self.positions.get(category, ())

    def categories(self) -> list[str]:
        return sorted(self.positions, key=lambda label: (label.casefold(), label))

    def row_counts(self) -> dict[str, int]:
        return {category: len(self.positions[category]) for category in self.categories()}


def build_category_index(
    snapshot: DatasetSnapshot,
    token: CancellationToken,
    *,
    chunk_rows: int = DEFAULT_INDEX_CHUNK_ROWS,
) -> Generator[None, None, CategoryIndex | None]:
    """Cooperatively index ``snapshot`` by category.

    Yields every ``chunk_rows`` rows and returns ``None`` if ``token`` was
    superseded in the meantime. Rows with an empty label belong to no category.
    """
    if not snapshot.has("category"):
        LOGGER.warning("No category column among %s", snapshot.resolved.aliases.category)
        return CategoryIndex()

    labels = snapshot.values("category")
    grouped: dict[str, list[int]] = {}
    for chunk_start in range(0, len(labels), chunk_rows):
        if chunk_start:
            yield
            if token.cancelled:
                LOGGER.debug("Abandoned category index build at row %d", chunk_start)
                return None
        for position in range(chunk_start, min(chunk_start + chunk_rows, len(labels))):
            label = normalize_label(labels[position])
            if label:
                grouped.setdefault(label, []).append(position)

    if token.cancelled:
        return None
    LOGGER.debug("Indexed %d rows into %d categories", snapshot.row_count, len(grouped))
    return CategoryIndex(
        positions=MappingProxyType(
            {category: tuple(positions) for category, positions in grouped.items()}
        )
    )
