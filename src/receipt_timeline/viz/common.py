from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt


def save_figure(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def label_step(n_labels: int, max_labels: int) -> int:
    """Stride that keeps at most ``max_labels`` x tick labels visible."""
    return max(1, -(-n_labels // max(1, max_labels)))
