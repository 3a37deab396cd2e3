from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from epi_dashboard.features.aggregates import StateSummary
from epi_dashboard.features.grouping import HistogramBin, median
from epi_dashboard.viz.common import (
    ACCENT_COLOR,
    CASES_COLOR,
    HIGHLIGHT_COLOR,
    padded_max,
    save_figure,
)

LOGGER = logging.getLogger(__name__)


def _apply_axis(axis: str) -> None:
    if axis == "log":
        plt.yscale("log", nonpositive="clip")


def plot_ranked_bar(
    summaries: Sequence[StateSummary],
    output_path: Path,
    year_label: str = "all",
) -> Path | None:
    if not summaries:
        return None
    labels = [item.state for item in summaries]
    values = [item.cases for item in summaries]
    peak = max(values)
    colors = [HIGHLIGHT_COLOR if value == peak else CASES_COLOR for value in values]

    plt.figure(figsize=(max(8.0, 0.35 * len(labels)), 4.5))
    plt.bar(np.arange(len(labels)), values, color=colors)
    plt.xticks(np.arange(len(labels)), labels, rotation=45, ha="right")
    plt.ylim(0, padded_max(values))
    plt.title(f"Cases by state ({year_label})")
    plt.ylabel("Cases")
    return save_figure(output_path)


def plot_histogram(
    bins: Sequence[HistogramBin],
    output_path: Path,
    normalize: str = "cases",
) -> Path | None:
    if not bins:
        return None
    x = np.arange(len(bins))
    plt.figure(figsize=(8, 4))
    plt.bar(x, [item.count for item in bins], color=ACCENT_COLOR, alpha=0.85)
    plt.xticks(x, [item.label for item in bins], rotation=20)
    plt.title("Distribution of states by " + ("cases per 100k" if normalize == "per100k" else "cases"))
    plt.ylabel("# states")
    return save_figure(output_path)


def plot_scatter(
    points: Sequence[Mapping[str, Any]],
    output_path: Path,
    x_label: str,
    y_label: str,
) -> Path | None:
    if not points:
        return None
    plt.figure(figsize=(8, 5))
    plt.scatter(
        [point["x"] for point in points],
        [point["y"] for point in points],
        color=ACCENT_COLOR,
        alpha=0.6,
    )
    plt.xlabel(x_label)
    plt.ylabel(y_label)
    plt.title(f"{y_label} vs {x_label}")
    return save_figure(output_path)


def plot_multi_series(
    labels: Sequence[str],
    series: Mapping[str, Sequence[float]],
    output_path: Path,
    title: str = "Cases by year",
    axis: str = "linear",
) -> Path | None:
    if not labels or not series:
        return None
    plt.figure(figsize=(10, 4.5))
    for name, values in series.items():
        plt.plot(list(labels), list(values), linewidth=2, marker="o", label=name)
    _apply_axis(axis)
    plt.title(title)
    plt.xlabel("Year")
    plt.ylabel("Cases")
    plt.legend(loc="upper left")
    return save_figure(output_path)


def plot_time_series(
    labels: Sequence[str],
    values: Sequence[float],
    output_path: Path,
    y_label: str = "Cases",
    axis: str = "linear",
) -> Path | None:
    if not labels:
        return None
    plt.figure(figsize=(10, 4))
    plt.plot(list(labels), list(values), linewidth=2, color=ACCENT_COLOR)
    _apply_axis(axis)
    plt.title(f"{y_label} by year")
    plt.xlabel("Year")
    plt.ylabel(y_label)
    return save_figure(output_path)


def plot_per100k_bar(
    labels: Sequence[str],
    values: Sequence[float],
    output_path: Path,
) -> Path | None:
    if not labels:
        return None
    x = np.arange(len(labels))
    plt.figure(figsize=(10, 4))
    plt.bar(x, list(values), color=ACCENT_COLOR, alpha=0.8)
    plt.xticks(x, list(labels), rotation=45, ha="right")
    plt.title("Cases per 100k by year")
    plt.ylabel("Cases per 100k")
    return save_figure(output_path)


def _plot_median_bars(groups: Mapping[str, Sequence[float]], axis: str) -> None:
    labels = list(groups)
    medians = [median(values) for values in groups.values()]
    x = np.arange(len(labels))
    plt.bar(x, medians, color=ACCENT_COLOR, alpha=0.6)
    plt.xticks(x, labels, rotation=45, ha="right")
    _apply_axis(axis)
    plt.ylabel("Median")


def plot_distribution(
    groups: Mapping[str, Sequence[float]],
    output_path: Path,
    axis: str = "linear",
    style: str = "box",
) -> Path | None:
    """Box plot per group; falls back to median bars when boxes cannot be drawn."""
    if not groups:
        return None
    labels = list(groups)
    plt.figure(figsize=(max(8.0, 0.4 * len(labels)), 4.5))
    if style == "box":
        try:
            plt.boxplot([list(values) for values in groups.values()], showfliers=True)
            plt.xticks(np.arange(1, len(labels) + 1), labels, rotation=45, ha="right")
            _apply_axis(axis)
            plt.title("Distribution")
        except (ValueError, TypeError) as exc:
            LOGGER.warning("Box plot unavailable (%s); drawing median bars instead", exc)
            plt.clf()
            style = "median_bar"
    if style != "box":
        _plot_median_bars(groups, axis)
        plt.title("Distribution (median)")
    return save_figure(output_path)


def plot_heatmap(matrix: pd.DataFrame, output_path: Path) -> Path | None:
    if matrix.empty or matrix.shape[1] == 0:
        return None
    fig_height = max(3.0, min(12.0, 0.4 * len(matrix.index)))
    plt.figure(figsize=(max(6.0, 0.6 * len(matrix.columns)), fig_height))
    image = plt.imshow(matrix.to_numpy(dtype=float), aspect="auto", cmap="Blues")
    plt.colorbar(image, label="Cases")
    plt.xticks(np.arange(len(matrix.columns)), list(matrix.columns), rotation=45, ha="right")
    plt.yticks(np.arange(len(matrix.index)), list(matrix.index))
    plt.xlabel("Year")
    plt.ylabel("Disease")
    plt.title("Cases by disease and year")
    return save_figure(output_path)
