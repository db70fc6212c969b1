from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from receipt_timeline.config import AppConfig
from receipt_timeline.features.aggregation import AggregationEngine
from receipt_timeline.features.buckets import Clock, Granularity, coerce_granularity
from receipt_timeline.features.category_index import CategoryIndex, build_category_index
from receipt_timeline.features.series import BucketSeries
from receipt_timeline.io.schema import MissingColumnsError
from receipt_timeline.io.snapshot import DatasetSnapshot, build_snapshot
from receipt_timeline.preprocess.labels import normalize_label
from receipt_timeline.tasks import (
    CancellationToken,
    GenerationCounter,
    ImmediateScheduler,
    Scheduler,
)

LOGGER = logging.getLogger(__name__)

PanelStatus = Literal[
    "no_data",
    "no_selection",
    "loading",
    "ready",
    "empty",
    "missing_columns",
    "invalid_data",
]

TITLES: dict[str, dict[str, str]] = {
    "fr": {
        "week": "Réception par semaine",
        "month": "Réception par mois",
        "year": "Réception par année",
    },
    "en": {
        "week": "Received per week",
        "month": "Received per month",
        "year": "Received per year",
    },
}

MESSAGES: dict[str, dict[str, str]] = {
    "fr": {
        "empty": "Aucun reçu (hors archives) pour ce projet.",
        "missing_columns": (
            "Colonnes manquantes. Dans le panneau de droite, affiche au minimum : {columns}."
        ),
        "invalid_data": "Données illisibles : {detail}",
    },
    "en": {
        "empty": "No receipts (excluding archived rows) for this project.",
        "missing_columns": "Missing columns. Expose at least: {columns}.",
        "invalid_data": "Unreadable data: {detail}",
    },
}


@dataclass(frozen=True)
class PanelView:
    status: PanelStatus
    title: str
    message: str = ""
    total: int | None = None
    series: BucketSeries | None = None


class SelectionSink(Protocol):
    def set_selected_rows(self, row_ids: list[Any] | None) -> None:
        ...


class PanelPresenter(Protocol):
    def show(self, view: PanelView) -> None:
        ...

    def show_categories(self, categories: list[str], selected: str) -> None:
        ...


class PanelSession:
    """Composition root for one embedded panel.

    Owns the current snapshot, its category index and the aggregation engine,
    and turns host notifications and user selections into published
    :class:`PanelView` states.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        scheduler: Scheduler | None = None,
        selection_sink: SelectionSink | None = None,
        presenter: PanelPresenter | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.scheduler = scheduler or ImmediateScheduler()
        self.selection_sink = selection_sink
        self.presenter = presenter
        self.engine = AggregationEngine(config, clock=clock)
        self.data_generations = GenerationCounter()
        self.snapshot: DatasetSnapshot | None = None
        self.index: CategoryIndex | None = None
        self.selected_category = ""
        self.granularity: Granularity = coerce_granularity(config.display.granularity)
        self.view = PanelView(status="no_data", title=self._title(""))

    # Host data ---------------------------------------------------------

    def on_records(self, data: Any) -> None:
        token = self.data_generations.advance()
        try:
            snapshot = build_snapshot(data, self.config.columns)
        except ValueError as exc:
            LOGGER.warning("Ignoring unreadable dataset payload: %s", exc)
            self.snapshot = None
            self.index = None
            self.engine.reset(None, None)
            self._publish(
                PanelView(
                    status="invalid_data",
                    title=self._title(self.selected_category),
                    message=self._messages()["invalid_data"].format(detail=exc),
                )
            )
            return
        if snapshot is None:
            return

        LOGGER.debug("Received snapshot with %d rows", snapshot.row_count)
        self.snapshot = snapshot
        self.index = None
        self.engine.reset(None, None)
        if self.selected_category:
            self._publish(self._loading_view())

        task = build_category_index(
            snapshot, token, chunk_rows=self.config.chunking.index_chunk_rows
        )
        self.scheduler.submit(
            task, lambda index: self._on_index_ready(snapshot, index, token)
        )

    def _on_index_ready(
        self, snapshot: DatasetSnapshot, index: CategoryIndex, token: CancellationToken
    ) -> None:
        if token.cancelled:
            return
        self.index = index
        self.engine.reset(snapshot, index)
        categories = index.categories()
        if self.presenter is not None:
            restored = self.selected_category if self.selected_category in index else ""
            self.presenter.show_categories(categories, restored)
        missing = snapshot.resolved.missing()
        if missing:
            LOGGER.warning("Snapshot cannot be aggregated: %s", MissingColumnsError(missing))
            self._publish(self._missing_columns_view(self.selected_category, missing))
            return
        if self.selected_category:
            self._request()
        else:
            self._publish(PanelView(status="no_selection", title=self._title("")))

    def categories(self) -> list[str]:
        return self.index.categories() if self.index is not None else []

    # Selection ---------------------------------------------------------

    def select(self, category: Any, granularity: Any = None) -> None:
        self.selected_category = normalize_label(category)
        if granularity is not None:
            self.granularity = coerce_granularity(granularity)

        if not self.selected_category:
            self.engine.cancel()
            self._publish(PanelView(status="no_selection", title=self._title("")))
            self._push_selection(None)
            return
        if not self.engine.ready:
            if self.snapshot is not None:
                self._publish(self._loading_view())
            return
        self._request()

    def set_granularity(self, granularity: Any) -> None:
        self.select(self.selected_category, granularity)

    def _request(self) -> None:
        category, granularity = self.selected_category, self.granularity
        try:
            task = self.engine.compute(category, granularity)
        except MissingColumnsError as exc:
            LOGGER.warning("Cannot aggregate %r: %s", category, exc)
            self._publish(self._missing_columns_view(category, exc.missing))
            return
        if self.engine.cached(category, granularity) is None:
            self._publish(self._loading_view())
        self.scheduler.submit(task, self._on_series)

    def _on_series(self, series: BucketSeries) -> None:
        if (series.category, series.granularity) != (self.selected_category, self.granularity):
            return
        if series.is_empty:
            self._publish(
                PanelView(
                    status="empty",
                    title=self._title(series.category),
                    message=self._messages()["empty"],
                    total=0,
                    series=series,
                )
            )
            return
        self._publish(
            PanelView(
                status="ready",
                title=self._title(series.category),
                total=series.total,
                series=series,
            )
        )

    def current_series(self) -> BucketSeries | None:
        if not self.selected_category:
            return None
        return self.engine.cached(self.selected_category, self.granularity)

    # Drill-down ---------------------------------------------------------

    def row_ids_for(self, bucket_key: str) -> list[Any]:
        series = self.current_series()
        return series.row_ids_for(bucket_key) if series is not None else []

    def activate_bucket(self, bucket_key: str) -> list[Any]:
        """Push the rows behind ``bucket_key`` to the host selection."""
        row_ids = self.row_ids_for(bucket_key)
        if not row_ids:
            return []
        self._push_selection(row_ids)
        return row_ids

    def tooltip(self, bucket_key: str) -> str | None:
        series = self.current_series()
        if series is None or series.count_for(bucket_key) <= 0:
            return None
        return f"{series.label_for(bucket_key)} : {series.count_for(bucket_key)}"

    def _push_selection(self, row_ids: list[Any] | None) -> None:
        if self.selection_sink is None:
            return
        try:
            self.selection_sink.set_selected_rows(row_ids or None)
        except Exception:
            LOGGER.debug("Selection sync failed", exc_info=True)

    # View helpers -------------------------------------------------------

    def _messages(self) -> dict[str, str]:
        return MESSAGES[self.config.display.locale]

    def _title(self, category: str) -> str:
        base = TITLES[self.config.display.locale][self.granularity]
        return f"{base} - {category}" if category else base

    def _missing_columns_view(self, category: str, missing: dict[str, list[str]]) -> PanelView:
        columns = ", ".join(aliases[0] for aliases in missing.values())
        return PanelView(
            status="missing_columns",
            title=self._title(category),
            message=self._messages()["missing_columns"].format(columns=columns),
        )

    def _loading_view(self) -> PanelView:
        return PanelView(status="loading", title=self._title(self.selected_category))

    def _publish(self, view: PanelView) -> None:
        self.view = view
        if self.presenter is not None:
            self.presenter.show(view)
