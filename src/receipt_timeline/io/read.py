from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd


def load_records(path: Path) -> Any:
    """Load a dataset payload in a shape accepted by ``build_snapshot``.

    CSV and parquet files come back as DataFrames; JSON files keep their own
    shape (a column mapping or a list of row objects).
    """
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig")
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".json":
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, (dict, list)):
            raise ValueError("JSON dataset must be a column mapping or a list of rows")
        return payload
    raise ValueError(f"Unsupported dataset file type: {path.suffix}")
