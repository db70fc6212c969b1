from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import numpy as np
import pandas as pd

from receipt_timeline.config import ColumnsConfig
from receipt_timeline.io.schema import LogicalField, ResolvedColumns, resolve_columns


@dataclass(frozen=True)
class DatasetSnapshot:
    """Immutable columnar view of the host dataset at one point in time."""

    columns: Mapping[str, tuple[Any, ...]]
    resolved: ResolvedColumns
    row_count: int

    def has(self, field: LogicalField) -> bool:
        return self.resolved.source(field) is not None

    def values(self, field: LogicalField) -> tuple[Any, ...]:
        self.resolved.require(field)
        return self.columns[self.resolved.source(field)]  # type: ignore[index]


def _as_sequence(values: Any) -> list[Any]:
    if isinstance(values, (pd.Series, pd.Index)):
        return values.tolist()
    if isinstance(values, np.ndarray):
        return values.tolist()
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise ValueError(f"column values must be a sequence, got {type(values).__name__}")
    return list(values)


def _rows_to_columns(rows: Sequence[Any]) -> dict[str, list[Any]]:
    columns: dict[str, list[Any]] = {}
    for position, row in enumerate(rows):
        if row is None:
            continue
        if not isinstance(row, Mapping):
            raise ValueError(f"row {position} is not a mapping: {type(row).__name__}")
        for name, value in row.items():
            if name not in columns:
                columns[name] = [None] * len(rows)
            columns[name][position] = value
    return columns


def to_columnar(data: Any) -> dict[str, list[Any]] | None:
    """Accept a DataFrame, a column mapping, or a sequence of row mappings."""
    if data is None:
        return None
    if isinstance(data, pd.DataFrame):
        return {str(name): data[name].tolist() for name in data.columns}
    if isinstance(data, Mapping):
        return {str(name): _as_sequence(values) for name, values in data.items()}
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        return _rows_to_columns(data)
    raise ValueError(f"unsupported dataset payload: {type(data).__name__}")


def build_snapshot(data: Any, aliases: ColumnsConfig) -> DatasetSnapshot | None:
    columns = to_columnar(data)
    if columns is None:
        return None

    lengths = {name: len(values) for name, values in columns.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={length}" for name, length in sorted(lengths.items()))
        raise ValueError(f"columns have differing lengths: {detail}")

    frozen = {name: tuple(values) for name, values in columns.items()}
    return DatasetSnapshot(
        columns=MappingProxyType(frozen),
        resolved=resolve_columns(frozen, aliases),
        row_count=next(iter(lengths.values()), 0),
    )
