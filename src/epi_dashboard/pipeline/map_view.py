from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from epi_dashboard.config import AppConfig
from epi_dashboard.features.aggregates import (
    StateSummary,
    aggregate_by_state,
    scatter_points,
    summaries_to_frame,
    year_series_for_diseases,
)
from epi_dashboard.features.distributions import distribution_groups, distribution_summaries
from epi_dashboard.features.grouping import (
    HistogramBin,
    SortMode,
    build_histogram,
    common_years,
    rank_summaries,
    summary_table,
    top_n_by_total,
    years_by_disease,
)
from epi_dashboard.io.write import write_summary, write_table
from epi_dashboard.paths import build_output_paths
from epi_dashboard.pipeline.dataset import draw_figure
from epi_dashboard.viz.charts import (
    plot_distribution,
    plot_histogram,
    plot_multi_series,
    plot_ranked_bar,
    plot_scatter,
)
from epi_dashboard.viz.maps import plot_choropleth, style_features

LOGGER = logging.getLogger(__name__)


@dataclass
class MapView:
    disease: str | None
    year: str | None
    summaries: dict[str, StateSummary]
    ranked: list[StateSummary]
    histogram: list[HistogramBin]
    scatter: list[dict[str, Any]]
    series_years: list[str]
    series: dict[str, list[float]]
    distribution: dict[str, list[float]]
    summary_rows: list[dict[str, Any]]
    styled_geojson: dict[str, Any]
    figures: dict[str, Path] = field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        return {
            "disease": self.disease,
            "year": self.year,
            "ranked": [
                {"state": item.state, "cases": item.cases, "per100k": item.per100k}
                for item in self.ranked
            ],
            "histogram": [
                {
                    "label": item.label,
                    "count": item.count,
                    "top": [{"state": state, "value": value} for state, value in item.top_members()],
                }
                for item in self.histogram
            ],
            "scatter": self.scatter,
            "series": {"years": self.series_years, "diseases": self.series},
            "distribution": distribution_summaries(self.distribution),
            "summary_table": self.summary_rows,
        }


def select_series(
    frame: pd.DataFrame,
    selected: list[str] | None,
    top_n: int,
) -> tuple[list[str], dict[str, list[float]]]:
    """Multi-disease series over the years every selected disease shares."""
    diseases = selected or top_n_by_total(frame, "disease", top_n)
    if not diseases:
        return [], {}
    years = [str(year) for year in common_years(years_by_disease(frame, diseases))]
    return years, year_series_for_diseases(frame, diseases, years)


def histogram_values(summaries: dict[str, StateSummary], normalize: str) -> dict[str, float]:
    if normalize == "per100k":
        return {state: item.per100k for state, item in summaries.items()}
    return {state: item.cases for state, item in summaries.items()}


def build_map_view(
    frame: pd.DataFrame,
    config: AppConfig,
    disease: str | None = None,
    year: str | None = None,
    geojson: dict[str, Any] | None = None,
    selected_diseases: list[str] | None = None,
    sort_mode: SortMode | str | None = None,
) -> MapView:
    charts = config.charts
    summaries = aggregate_by_state(
        frame,
        disease=disease,
        year=year,
        policy=config.aggregation.population_policy,
    )
    series_years, series = select_series(frame, selected_diseases, charts.top_n_diseases)
    return MapView(
        disease=disease or None,
        year=str(year) if year else None,
        summaries=summaries,
        ranked=rank_summaries(summaries.values(), sort_mode or charts.sort_mode),
        histogram=build_histogram(
            histogram_values(summaries, charts.histogram_normalize),
            bin_count=charts.histogram_bins,
        ),
        scatter=scatter_points(summaries, per_capita=charts.scatter_per_capita),
        series_years=series_years,
        series=series,
        distribution=distribution_groups(
            frame,
            mode=charts.box_group,
            normalize=charts.box_normalize,
            disease=disease,
        ),
        summary_rows=summary_table(summaries.values()),
        styled_geojson=style_features(geojson or {}, summaries, config=config.map),
    )


def render_map_figures(view: MapView, out_dir: Path, config: AppConfig) -> dict[str, Path]:
    paths = build_output_paths(out_dir)
    suffix = config.outputs.figures_format
    charts = config.charts
    figures: dict[str, Path] = {}
    year_label = view.year or "all"
    per_capita = charts.scatter_per_capita

    draw_figure(
        figures,
        "choropleth",
        lambda: plot_choropleth(
            view.styled_geojson,
            paths.figures / f"map_choropleth.{suffix}",
            title=f"{view.disease or 'All diseases'} · {year_label}",
        ),
    )
    draw_figure(
        figures,
        "cases_by_state",
        lambda: plot_ranked_bar(
            view.ranked, paths.figures / f"map_cases_by_state.{suffix}", year_label=year_label
        ),
    )
    draw_figure(
        figures,
        "histogram",
        lambda: plot_histogram(
            view.histogram,
            paths.figures / f"map_histogram.{suffix}",
            normalize=charts.histogram_normalize,
        ),
    )
    draw_figure(
        figures,
        "scatter",
        lambda: plot_scatter(
            view.scatter,
            paths.figures / f"map_scatter.{suffix}",
            x_label="Population density",
            y_label="Cases per 100k" if per_capita else "Cases",
        ),
    )
    draw_figure(
        figures,
        "multi_series",
        lambda: plot_multi_series(
            view.series_years,
            view.series,
            paths.figures / f"map_multi_disease.{suffix}",
            title="Cases by year (common years)",
            axis=charts.axis,
        ),
    )
    draw_figure(
        figures,
        "distribution",
        lambda: plot_distribution(
            view.distribution,
            paths.figures / f"map_distribution.{suffix}",
            axis=charts.axis,
            style=charts.distribution_style,
        ),
    )
    view.figures = figures
    return figures


def build_map_artifacts(
    frame: pd.DataFrame,
    out_dir: Path,
    config: AppConfig,
    disease: str | None = None,
    year: str | None = None,
    geojson: dict[str, Any] | None = None,
) -> MapView:
    paths = build_output_paths(out_dir)
    view = build_map_view(frame, config, disease=disease, year=year, geojson=geojson)

    extension = "parquet" if config.outputs.tables_format == "parquet" else "csv"
    write_table(
        summaries_to_frame(view.summaries.values()),
        paths.tables / f"state_summaries.{extension}",
        fmt=config.outputs.tables_format,
    )
    write_summary(view.payload(), paths.summary / "map_view.json")
    render_map_figures(view, out_dir, config)
    LOGGER.info(
        "Map view built for disease=%s year=%s: %s states, %s figures",
        view.disease or "all",
        view.year or "all",
        len(view.summaries),
        len(view.figures),
    )
    return view
