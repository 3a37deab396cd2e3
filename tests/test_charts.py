from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from epi_dashboard.features.aggregates import StateSummary
from epi_dashboard.features.grouping import build_histogram
from epi_dashboard.viz.charts import (
    plot_distribution,
    plot_heatmap,
    plot_histogram,
    plot_multi_series,
    plot_per100k_bar,
    plot_ranked_bar,
    plot_scatter,
    plot_time_series,
)
from epi_dashboard.viz.common import padded_max


def test_padded_max_leaves_headroom() -> None:
    assert padded_max([]) == 1.0
    assert padded_max([0, None]) == 1.0
    assert padded_max([float("nan")]) == 1.0
    assert padded_max([300]) == pytest.approx(342.0)
    assert padded_max([437, 12]) == pytest.approx(498.18)
    assert padded_max([0.2]) == 1.0


def test_ranked_bar_axis_stays_close_to_the_peak(monkeypatch, tmp_path: Path) -> None:
    limits: list[tuple] = []
    original_ylim = plt.ylim

    def _record_ylim(*args, **kwargs):
        limits.append(args)
        return original_ylim(*args, **kwargs)

    monkeypatch.setattr(plt, "ylim", _record_ylim)
    summaries = [
        StateSummary("California", 300.0, 1000.0, 90.0, 30000.0),
        StateSummary("Texas", 20.0, 2000.0, 40.0, 1000.0),
    ]
    plot_ranked_bar(summaries, tmp_path / "ranked.png")

    assert len(limits) == 1
    bottom, top = limits[0]
    assert bottom == 0
    assert 300.0 < top <= 1.5 * 300.0


def test_chart_writers_create_files(tmp_path: Path) -> None:
    summaries = [
        StateSummary("California", 300.0, 1000.0, 90.0, 30000.0),
        StateSummary("Texas", 20.0, 2000.0, 40.0, 1000.0),
    ]
    outputs = [
        plot_ranked_bar(summaries, tmp_path / "ranked.png", year_label="2020"),
        plot_histogram(build_histogram([0, 50, 100, 5000]), tmp_path / "histogram.png"),
        plot_scatter(
            [{"x": 90.0, "y": 300.0}, {"x": 40.0, "y": 20.0}],
            tmp_path / "scatter.png",
            x_label="Population density",
            y_label="Cases",
        ),
        plot_multi_series(
            ["2019", "2020"],
            {"Flu": [150.0, 330.0], "Measles": [0.0, 5.0]},
            tmp_path / "multi.png",
            axis="log",
        ),
        plot_time_series(["2019", "2020"], [150.0, 330.0], tmp_path / "time.png"),
        plot_per100k_bar(["2019", "2020"], [10.0, 30.0], tmp_path / "per100k.png"),
        plot_heatmap(
            pd.DataFrame([[1.0, 0.0], [2.0, 3.0]], index=["Flu", "Measles"], columns=["2019", "2020"]),
            tmp_path / "heatmap.png",
        ),
    ]

    for output in outputs:
        assert output is not None
        assert output.exists()


def test_chart_writers_skip_empty_input(tmp_path: Path) -> None:
    assert plot_ranked_bar([], tmp_path / "a.png") is None
    assert plot_histogram([], tmp_path / "b.png") is None
    assert plot_scatter([], tmp_path / "c.png", x_label="x", y_label="y") is None
    assert plot_multi_series([], {}, tmp_path / "d.png") is None
    assert plot_time_series([], [], tmp_path / "e.png") is None
    assert plot_per100k_bar([], [], tmp_path / "f.png") is None
    assert plot_heatmap(pd.DataFrame(), tmp_path / "g.png") is None
    assert plot_distribution({}, tmp_path / "h.png") is None
    assert not any(tmp_path.iterdir())


def test_distribution_draws_box_or_median_bars(tmp_path: Path) -> None:
    groups = {"2019": [100.0, 0.0, 50.0], "2020": [300.0, 10.0, 20.0]}

    box = plot_distribution(groups, tmp_path / "box.png")
    bars = plot_distribution(groups, tmp_path / "bars.png", style="median_bar", axis="log")

    assert box is not None and box.exists()
    assert bars is not None and bars.exists()


def test_distribution_falls_back_when_box_plot_fails(monkeypatch, tmp_path: Path) -> None:
    def _broken_boxplot(*_args, **_kwargs):
        raise ValueError("box plots unavailable")

    monkeypatch.setattr(plt, "boxplot", _broken_boxplot)
    output = plot_distribution({"2020": [1.0, 2.0]}, tmp_path / "fallback.png")

    assert output is not None
    assert output.exists()
