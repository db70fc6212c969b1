from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

PLACEHOLDER_LABELS = frozenset({"", "-"})


def normalize_label(value: Any) -> str:
    """Return the trimmed category label, or ``""`` when the cell means "no value"."""
    if value is None:
        return ""
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return ""
    text = str(value).strip()
    return "" if text in PLACEHOLDER_LABELS else text


def is_truthy_flag(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    if isinstance(value, (int, float, np.integer, np.floating)):
        return value == 1
    return False
