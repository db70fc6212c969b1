from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from receipt_timeline.cli import app

CSV_TEXT = "\n".join(
    [
        "id,NomProjetString,Recu,Archive",
        "1,Proj1,15/01/2024,false",
        "2,Proj1,2024-01-20,false",
        "3,Proj1,01/03/2024,true",
        "4,Proj1,2024-03-05,false",
        "5,Proj2,2024-02-02,false",
    ]
)


def _write_inputs(tmp_path: Path, csv_text: str = CSV_TEXT) -> tuple[Path, Path]:
    data_path = tmp_path / "rows.csv"
    data_path.write_text(csv_text + "\n", encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}\n", encoding="utf-8")
    return data_path, config_path


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "categories" in result.stdout
    assert "histogram" in result.stdout
    assert "rows" in result.stdout


def test_categories_command_lists_row_counts(tmp_path: Path) -> None:
    data_path, config_path = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        app, ["categories", "--data", str(data_path), "--config", str(config_path)]
    )

    assert result.exit_code == 0
    assert "Proj1\t4" in result.stdout
    assert "Proj2\t1" in result.stdout


def test_histogram_command_prints_and_exports_series(tmp_path: Path) -> None:
    data_path, config_path = _write_inputs(tmp_path)
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(
        app,
        [
            "histogram",
            "--data",
            str(data_path),
            "--category",
            "Proj1",
            "--out",
            str(out_dir),
            "--config",
            str(config_path),
        ],
    )

    assert result.exit_code == 0
    assert "Réception par mois - Proj1" in result.stdout
    assert "2024-01\tjanv. 2024\t2" in result.stdout
    assert "2024-02\tfévr. 2024\t0" in result.stdout
    assert "2024-03\tmars 2024\t1" in result.stdout
    assert "total\t3" in result.stdout
    assert (out_dir / "buckets_month.csv").exists()
    assert (out_dir / "buckets_month.png").exists()
    summary = json.loads((out_dir / "buckets_month_summary.json").read_text(encoding="utf-8"))
    assert summary["total"] == 3
    assert summary["first_key"] == "2024-01"


def test_histogram_command_falls_back_to_month_for_unknown_granularity(tmp_path: Path) -> None:
    data_path, config_path = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            "histogram",
            "--data",
            str(data_path),
            "--category",
            "Proj2",
            "--granularity",
            "fortnight",
            "--out",
            str(tmp_path / "out"),
            "--no-figure",
            "--config",
            str(config_path),
        ],
    )

    assert result.exit_code == 0
    assert "2024-02\tfévr. 2024\t1" in result.stdout
    assert not (tmp_path / "out" / "buckets_month.png").exists()


def test_rows_command_prints_bucket_identifiers(tmp_path: Path) -> None:
    data_path, config_path = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            "rows",
            "--data",
            str(data_path),
            "--category",
            "Proj1",
            "--bucket",
            "2024-01",
            "--config",
            str(config_path),
        ],
    )

    assert result.exit_code == 0
    assert result.stdout.split() == ["1", "2"]


def test_histogram_command_reports_missing_columns(tmp_path: Path) -> None:
    data_path, config_path = _write_inputs(tmp_path, "id,NomProjetString\n1,Proj1")

    result = CliRunner().invoke(
        app,
        [
            "histogram",
            "--data",
            str(data_path),
            "--category",
            "Proj1",
            "--out",
            str(tmp_path / "out"),
            "--config",
            str(config_path),
        ],
    )

    assert result.exit_code != 0
    assert not (tmp_path / "out").exists()
