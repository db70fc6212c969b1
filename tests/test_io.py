from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from receipt_timeline.features.series import BucketSeries
from receipt_timeline.io.read import load_records
from receipt_timeline.io.write import write_series, write_table


def _series() -> BucketSeries:
    return BucketSeries(
        category="Proj1",
        granularity="month",
        keys=("2024-01", "2024-02", "2024-03"),
        labels=("janv. 2024", "févr. 2024", "mars 2024"),
        counts=(2, 0, 1),
        row_ids={"2024-01": (1, 2), "2024-03": (3,)},
        total=3,
    )


def test_load_records_supports_csv_parquet_and_json(tmp_path: Path) -> None:
    frame = pd.DataFrame({"id": [1, 2], "NomProjet": ["A", "B"]})
    csv_path = tmp_path / "rows.csv"
    parquet_path = tmp_path / "rows.parquet"
    json_path = tmp_path / "rows.json"
    csv_path.write_text("\ufeffid,NomProjet\n1,A\n2,B\n", encoding="utf-8")
    frame.to_parquet(parquet_path, index=False)
    json_path.write_text(json.dumps([{"id": 1, "NomProjet": "A"}]), encoding="utf-8")

    assert list(load_records(csv_path).columns) == ["id", "NomProjet"]
    assert load_records(parquet_path)["NomProjet"].tolist() == ["A", "B"]
    assert load_records(json_path) == [{"id": 1, "NomProjet": "A"}]


def test_load_records_rejects_unknown_types(tmp_path: Path) -> None:
    text_path = tmp_path / "rows.txt"
    text_path.write_text("nope", encoding="utf-8")
    scalar_json = tmp_path / "rows.json"
    scalar_json.write_text("42", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported dataset file type"):
        load_records(text_path)
    with pytest.raises(ValueError, match="JSON dataset"):
        load_records(scalar_json)


def test_write_series_exports_table_and_summary(tmp_path: Path) -> None:
    written = write_series(_series(), tmp_path / "out")

    table = pd.read_csv(written["table"])
    assert table["bucket_key"].tolist() == ["2024-01", "2024-02", "2024-03"]
    assert table["count"].tolist() == [2, 0, 1]
    summary = json.loads(written["summary"].read_text(encoding="utf-8"))
    assert summary == {
        "category": "Proj1",
        "granularity": "month",
        "total": 3,
        "n_buckets": 3,
        "first_key": "2024-01",
        "last_key": "2024-03",
    }


def test_write_table_rejects_unknown_format(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported table format"):
        write_table(pd.DataFrame({"x": [1]}), tmp_path / "x.xlsx", fmt="xlsx")
