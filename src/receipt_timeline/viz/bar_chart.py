from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from receipt_timeline.features.series import BucketSeries
from receipt_timeline.viz.common import label_step, save_figure

MAX_X_LABELS = 16


def plot_bucket_series(
    series: BucketSeries,
    output_path: Path,
    title: str | None = None,
    max_labels: int = MAX_X_LABELS,
) -> Path:
    plt.figure(figsize=(12, 4))
    plt.title(title or series.category)
    if series.is_empty:
        plt.axis("off")
        plt.text(0.5, 0.5, "No data", ha="center", va="center")
        return save_figure(output_path)

    positions = np.arange(len(series.keys))
    plt.bar(positions, series.counts, width=0.8)

    step = label_step(len(series.keys), max_labels)
    tick_positions = positions[::step]
    tick_labels = [series.labels[int(position)] for position in tick_positions]
    # Tilt only when labels had to be thinned out.
    plt.xticks(tick_positions, tick_labels, rotation=20 if step > 1 else 0)

    max_count = max(series.counts)
    plt.yticks(np.arange(0, max_count + 1, max(1, int(np.ceil(max_count / 5)))))
    plt.ylabel("Count")
    return save_figure(output_path)
