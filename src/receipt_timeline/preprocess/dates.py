from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

import numpy as np
import pandas as pd

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
SENTINEL_DATE = date(1900, 1, 1)
SENTINEL_PREFIX = "1900-01-01"
PLACEHOLDER_STRINGS = frozenset({"", "-"})
# Encoded cells: ["D", seconds, tz] for date-times, ["d", seconds] for dates.
ENCODED_DATE_KINDS = frozenset({"D", "d"})
# pandas fills a missing year (or a whole missing date) from the wall clock.
EXPLICIT_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")
DAY_FIRST_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch_seconds(seconds: Any) -> datetime | None:
    if isinstance(seconds, (bool, np.bool_)):
        return None
    if not isinstance(seconds, (int, float, np.integer, np.floating)):
        return None
    if not math.isfinite(float(seconds)):
        return None
    try:
        return EPOCH + timedelta(seconds=float(seconds))
    except OverflowError:
        return None


def _from_encoded(value: list[Any] | tuple[Any, ...]) -> datetime | None:
    if len(value) < 2 or value[0] not in ENCODED_DATE_KINDS:
        return None
    return _from_epoch_seconds(value[1])


def _from_string(value: str) -> datetime | None:
    text = value.strip()
    if text in PLACEHOLDER_STRINGS or text.startswith(SENTINEL_PREFIX):
        return None

    match = DAY_FIRST_RE.match(text)
    if match:
        day, month, year = (int(group) for group in match.groups())
        try:
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            return None

    if not EXPLICIT_YEAR_RE.search(text):
        return None
    try:
        parsed = pd.Timestamp(text)
    except (ValueError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return _as_utc(parsed.to_pydatetime())


def _convert(raw: Any) -> datetime | None:
    if raw is None or raw is pd.NaT:
        return None
    if isinstance(raw, pd.Timestamp):
        return _as_utc(raw.to_pydatetime())
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
    if isinstance(raw, np.datetime64):
        if np.isnat(raw):
            return None
        return _convert(pd.Timestamp(raw))
    if isinstance(raw, str):
        return _from_string(raw)
    if isinstance(raw, (list, tuple)):
        return _from_encoded(raw)

    for method_name in ("to_pydatetime", "to_datetime"):
        converter = getattr(raw, method_name, None)
        if callable(converter):
            converted = converter()
            return _as_utc(converted) if isinstance(converted, datetime) else None
    return None


def normalize_date(raw: Any) -> datetime | None:
    """Convert a raw date cell into a UTC instant, or ``None`` for "no date".

    Accepts native datetimes/dates (naive values are read as UTC), objects with a
    ``to_pydatetime``/``to_datetime`` conversion, encoded ``(kind, epoch_seconds)``
    pairs, ``dd/mm/yyyy`` strings and any literal pandas can parse. Placeholders
    and the 1900-01-01 "no value" sentinel yield ``None``.
    """
    instant = _convert(raw)
    if instant is None or instant.date() == SENTINEL_DATE:
        return None
    return instant
