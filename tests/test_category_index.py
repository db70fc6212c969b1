from __future__ import annotations

from receipt_timeline.config import ColumnsConfig
from receipt_timeline.features.category_index import CategoryIndex, build_category_index
from receipt_timeline.io.snapshot import build_snapshot
from receipt_timeline.tasks import GenerationCounter, run_until_complete


def _snapshot(labels: list[object]):
    snapshot = build_snapshot(
        {
            "id": list(range(1, len(labels) + 1)),
            "NomProjetString": labels,
            "Recu": ["2024-01-01"] * len(labels),
        },
        ColumnsConfig(),
    )
    assert snapshot is not None
    return snapshot


def test_build_category_index_groups_positions_and_skips_empty_labels() -> None:
    snapshot = _snapshot([" Proj1 ", "Proj2", None, "-", "", "Proj1", float("nan"), "alpha"])

    index = run_until_complete(
        build_category_index(snapshot, GenerationCounter().advance(), chunk_rows=3)
    )

    assert isinstance(index, CategoryIndex)
    assert index.positions_for("Proj1") == (0, 5)
    assert index.positions_for("Proj2") == (1,)
    assert index.positions_for("missing") == ()
    assert index.categories() == ["alpha", "Proj1", "Proj2"]
    assert index.row_counts() == {"alpha": 1, "Proj1": 2, "Proj2": 1}
    assert "-" not in index
    assert len(index) == 3


def test_build_category_index_yields_between_chunks() -> None:
    snapshot = _snapshot(["A"] * 7)
    task = build_category_index(snapshot, GenerationCounter().advance(), chunk_rows=3)

    suspensions = 0
    while True:
        try:
            next(task)
            suspensions += 1
        except StopIteration as stop:
            index = stop.value
            break

    assert suspensions == 2
    assert index.positions_for("A") == tuple(range(7))


def test_superseded_index_build_abandons_without_result() -> None:
    counter = GenerationCounter()
    task = build_category_index(_snapshot(["A"] * 10), counter.advance(), chunk_rows=2)
    next(task)
    counter.advance()

    assert run_until_complete(task) is None


def test_build_category_index_without_category_column_is_empty() -> None:
    snapshot = build_snapshot({"id": [1, 2], "Recu": ["2024-01-01"] * 2}, ColumnsConfig())
    assert snapshot is not None

    index = run_until_complete(build_category_index(snapshot, GenerationCounter().advance()))

    assert index is not None
    assert len(index) == 0
    assert index.categories() == []
