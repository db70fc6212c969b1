from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from receipt_timeline.config import ColumnsConfig

LogicalField = Literal["category", "date", "row_id", "archived"]
LOGICAL_FIELDS: tuple[LogicalField, ...] = ("category", "date", "row_id", "archived")
REQUIRED_FIELDS: tuple[LogicalField, ...] = ("category", "date", "row_id")


class MissingColumnsError(ValueError):
    """Raised when required logical fields have no matching source column."""

    def __init__(self, missing: dict[str, list[str]]) -> None:
        self.missing = missing
        details = "; ".join(
            f"{field} (tried {', '.join(aliases)})" for field, aliases in missing.items()
        )
        super().__init__(f"Missing required columns: {details}")

    @property
    def fields(self) -> list[str]:
        return list(self.missing)


@dataclass(frozen=True)
class ResolvedColumns:
    """Concrete source column per logical field, resolved once at ingest."""

    category: str | None
    date: str | None
    row_id: str | None
    archived: str | None
    aliases: ColumnsConfig

    def source(self, field: LogicalField) -> str | None:
        return getattr(self, field)

    def missing(self, fields: Iterable[LogicalField] = REQUIRED_FIELDS) -> dict[str, list[str]]:
        return {
            field: list(getattr(self.aliases, field))
            for field in fields
            if self.source(field) is None
        }

    def require(self, *fields: LogicalField) -> None:
        missing = self.missing(fields or REQUIRED_FIELDS)
        if missing:
            raise MissingColumnsError(missing)


def resolve_columns(available: Iterable[str], aliases: ColumnsConfig) -> ResolvedColumns:
    present = set(available)

    def _first_present(candidates: list[str]) -> str | None:
        for candidate in candidates:
            if candidate in present:
                return candidate
        return None

    return ResolvedColumns(
        category=_first_present(aliases.category),
        date=_first_present(aliases.date),
        row_id=_first_present(aliases.row_id),
        archived=_first_present(aliases.archived),
        aliases=aliases,
    )
