from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

GRANULARITY_CHOICES = ("week", "month", "year")
DEFAULT_GRANULARITY = "month"


class ColumnsConfig(BaseModel):
    """Ordered alias lists per logical field; the first column present wins."""

    category: list[str] = Field(
        default_factory=lambda: ["NomProjetString", "NomProjet"], min_length=1
    )
    date: list[str] = Field(default_factory=lambda: ["Recu", "RecuString"], min_length=1)
    row_id: list[str] = Field(default_factory=lambda: ["id", "ID", "Id"], min_length=1)
    archived: list[str] = Field(default_factory=lambda: ["Archive"], min_length=1)


class ChunkingConfig(BaseModel):
    index_chunk_rows: int = Field(default=8000, ge=1)
    scan_chunk_rows: int = Field(default=12000, ge=1)
    walk_chunk_buckets: int = Field(default=600, ge=1)


class SeriesConfig(BaseModel):
    padding_buckets: int = Field(default=2, ge=0)
    max_buckets: int = Field(default=2400, ge=1)


class DisplayConfig(BaseModel):
    locale: Literal["fr", "en"] = "fr"
    granularity: Literal["week", "month", "year"] = DEFAULT_GRANULARITY

    @field_validator("granularity", mode="before")
    @classmethod
    def _default_unknown_granularity(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in GRANULARITY_CHOICES else DEFAULT_GRANULARITY


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"
    figures_format: str = "png"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    series: SeriesConfig = Field(default_factory=SeriesConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config file must contain a mapping: {path}")
    return AppConfig.model_validate(data)
