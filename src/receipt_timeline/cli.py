from __future__ import annotations

from pathlib import Path

import typer

from receipt_timeline.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from receipt_timeline.features.series import BucketSeries
from receipt_timeline.io.read import load_records
from receipt_timeline.io.write import write_series
from receipt_timeline.logging import configure_logging
from receipt_timeline.session import PanelSession
from receipt_timeline.viz.bar_chart import plot_bucket_series

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _open_session(data: Path, cfg: AppConfig) -> PanelSession:
    try:
        payload = load_records(data)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    session = PanelSession(cfg)
    session.on_records(payload)
    if session.view.status == "invalid_data":
        raise typer.BadParameter(session.view.message)
    return session


def _select_series(
    session: PanelSession, category: str, granularity: str | None
) -> BucketSeries:
    session.select(category, granularity or session.granularity)
    if session.view.status == "missing_columns":
        raise typer.BadParameter(session.view.message)
    series = session.current_series()
    if series is None:
        raise typer.BadParameter(f"No series computed for category: {category!r}")
    return series


@app.command()
def categories(
    data: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """List categories found in the dataset with their row counts."""
    configure_logging()
    cfg = _load_app_config(config)
    session = _open_session(data, cfg)
    if session.index is None or not len(session.index):
        typer.echo("No categories found.")
        return
    for category, n_rows in session.index.row_counts().items():
        typer.echo(f"{category}\t{n_rows}")


@app.command()
def histogram(
    data: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    category: str = typer.Option(..., help="Category label to aggregate."),
    granularity: str | None = typer.Option(
        None, help="week, month or year; unknown values fall back to month."
    ),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    figure: bool = typer.Option(True, help="Also render a bar chart figure."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Bucket a category's rows by calendar period and export the series."""
    configure_logging()
    cfg = _load_app_config(config)
    session = _open_session(data, cfg)
    series = _select_series(session, category, granularity)

    typer.echo(session.view.title)
    if series.is_empty:
        typer.echo(session.view.message or "No rows.")
    for key, label, count in zip(series.keys, series.labels, series.counts):
        typer.echo(f"{key}\t{label}\t{count}")
    typer.echo(f"total\t{series.total}")

    written = write_series(series, out, fmt=cfg.outputs.tables_format)
    if figure:
        written["figure"] = plot_bucket_series(
            series,
            out / f"buckets_{series.granularity}.{cfg.outputs.figures_format}",
            title=session.view.title,
        )
    typer.echo(f"Outputs: {', '.join(str(path) for path in written.values())}")


@app.command()
def rows(
    data: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    category: str = typer.Option(..., help="Category label to aggregate."),
    bucket: str = typer.Option(..., help="Bucket key, e.g. 2024-03, 2024-W09 or 2024."),
    granularity: str | None = typer.Option(None),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Print the row identifiers counted in one bucket."""
    configure_logging()
    cfg = _load_app_config(config)
    session = _open_session(data, cfg)
    _select_series(session, category, granularity)
    for row_id in session.row_ids_for(bucket):
        typer.echo(str(row_id))


if __name__ == "__main__":
    app()
