from __future__ import annotations

import math
from collections.abc import Iterable
from pathlib import Path

import matplotlib.pyplot as plt

CASES_COLOR = "#5fdcc8"
HIGHLIGHT_COLOR = "#dc5050"
ACCENT_COLOR = "#1e90ff"


def save_figure(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def padded_max(values: Iterable[float | None], padding: float = 0.14) -> float:
    """Axis ceiling with headroom above the largest finite value."""
    clean = [float(value) for value in values if value is not None and math.isfinite(value)]
    if not clean:
        return 1.0
    peak = max(clean)
    if peak <= 0:
        return 1.0
    return max(1.0, peak * (1 + padding))
