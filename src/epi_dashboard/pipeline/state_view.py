from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from epi_dashboard.config import AppConfig
from epi_dashboard.features.aggregates import (
    StateProfile,
    disease_year_matrix,
    filter_observations,
    per100k_series,
    state_profile,
    state_scatter_points,
    totals_by_year,
    year_disease_tree,
    year_series_for_diseases,
)
from epi_dashboard.features.grouping import unique_sorted
from epi_dashboard.io.write import write_summary
from epi_dashboard.paths import build_output_paths, slugify
from epi_dashboard.pipeline.dataset import draw_figure
from epi_dashboard.viz.charts import (
    plot_heatmap,
    plot_multi_series,
    plot_per100k_bar,
    plot_scatter,
    plot_time_series,
)
from epi_dashboard.viz.maps import (
    DEFAULT_CENTER,
    feature_center,
    find_feature,
    plot_choropleth,
)

LOGGER = logging.getLogger(__name__)

HIGHLIGHT_FILL = "#ff6b6b"
SCATTER_LABELS = {
    "population": "Population",
    "population_density": "Population density",
    "year": "Year",
    "cases": "Cases",
    "per100k": "Cases per 100k",
}


class UnknownStateError(LookupError):
    """Raised when a state has no rows in the dataset."""


@dataclass
class StateView:
    profile: StateProfile
    years: list[str]
    time_series: list[float]
    per100k: list[float]
    compare_diseases: list[str]
    compare_series: dict[str, list[float]]
    scatter: list[dict[str, Any]]
    tree: dict[str, Any]
    heatmap: pd.DataFrame
    center: list[float]
    zoom: int
    feature: dict[str, Any] | None = None
    scatter_axes: tuple[str, str] = ("population", "cases")
    figures: dict[str, Path] = field(default_factory=dict)

    @property
    def latest_text(self) -> str:
        return f"Latest ({self.profile.year or 'all'}): {self.profile.total_cases:,.0f} cases"

    def payload(self) -> dict[str, Any]:
        return {
            "state": self.profile.state,
            "disease": self.profile.disease,
            "year": self.profile.year,
            "total_cases": self.profile.total_cases,
            "population": self.profile.population,
            "density": self.profile.density,
            "years": self.years,
            "time_series": self.time_series,
            "per100k": self.per100k,
            "compare": {"diseases": self.compare_diseases, "series": self.compare_series},
            "scatter": self.scatter,
            "tree": self.tree,
            "heatmap": {
                "diseases": [str(label) for label in self.heatmap.index],
                "years": [str(label) for label in self.heatmap.columns],
                "values": self.heatmap.to_numpy(dtype=float).tolist(),
            },
            "center": self.center,
            "zoom": self.zoom,
        }


def build_state_view(
    frame: pd.DataFrame,
    state: str,
    config: AppConfig,
    disease: str | None = None,
    year: str | None = None,
    geojson: dict[str, Any] | None = None,
    compare: list[str] | None = None,
    scatter_x: str = "population",
    scatter_y: str = "cases",
) -> StateView:
    state_rows = filter_observations(frame, state=state)
    if state_rows.empty:
        raise UnknownStateError(f"No rows for state: {state}")

    profile = state_profile(frame, state, disease=disease, year=year)
    years = [str(value) for value in unique_sorted(state_rows["year"].tolist())]
    totals = totals_by_year(state_rows, disease=disease, years=years).tolist()

    diseases = [str(value) for value in unique_sorted(state_rows["disease"].tolist())]
    default_compare = diseases[: config.charts.compare_default_count]
    compare_diseases = [item for item in (compare or default_compare) if item in diseases]

    feature = find_feature(geojson or {}, state)
    return StateView(
        profile=profile,
        years=years,
        time_series=totals,
        per100k=per100k_series(totals, profile.population),
        compare_diseases=compare_diseases,
        compare_series=year_series_for_diseases(state_rows, compare_diseases, years),
        scatter=state_scatter_points(frame, state, x=scatter_x, y=scatter_y),
        tree=year_disease_tree(frame, state),
        heatmap=disease_year_matrix(frame, state),
        center=feature_center(feature) if feature else list(DEFAULT_CENTER),
        zoom=6 if feature else 4,
        feature=feature,
        scatter_axes=(scatter_x, scatter_y),
    )


def render_state_figures(view: StateView, out_dir: Path, config: AppConfig) -> dict[str, Path]:
    paths = build_output_paths(out_dir)
    suffix = config.outputs.figures_format
    axis = config.charts.axis
    slug = slugify(view.profile.state)
    figures: dict[str, Path] = {}

    if view.feature is not None:
        highlighted = {
            "type": "FeatureCollection",
            "features": [
                {
                    **view.feature,
                    "properties": {
                        **(view.feature.get("properties") or {}),
                        "style": {"fillColor": HIGHLIGHT_FILL},
                    },
                }
            ],
        }
        draw_figure(
            figures,
            "map",
            lambda: plot_choropleth(
                highlighted,
                paths.figures / f"state_{slug}_map.{suffix}",
                title=view.profile.state,
                highlight=view.profile.state,
            ),
        )
    if config.charts.time_series_normalize == "per100k":
        series, series_label = view.per100k, SCATTER_LABELS["per100k"]
    else:
        series, series_label = view.time_series, SCATTER_LABELS["cases"]
    draw_figure(
        figures,
        "time_series",
        lambda: plot_time_series(
            view.years,
            series,
            paths.figures / f"state_{slug}_time_series.{suffix}",
            y_label=series_label,
            axis=axis,
        ),
    )
    draw_figure(
        figures,
        "per100k",
        lambda: plot_per100k_bar(
            view.years, view.per100k, paths.figures / f"state_{slug}_per100k.{suffix}"
        ),
    )
    draw_figure(
        figures,
        "compare",
        lambda: plot_multi_series(
            view.years,
            view.compare_series,
            paths.figures / f"state_{slug}_compare.{suffix}",
            title="Disease comparison",
            axis=axis,
        ),
    )
    draw_figure(
        figures,
        "scatter",
        lambda: plot_scatter(
            view.scatter,
            paths.figures / f"state_{slug}_scatter.{suffix}",
            x_label=SCATTER_LABELS[view.scatter_axes[0]],
            y_label=SCATTER_LABELS[view.scatter_axes[1]],
        ),
    )
    draw_figure(
        figures,
        "heatmap",
        lambda: plot_heatmap(view.heatmap, paths.figures / f"state_{slug}_heatmap.{suffix}"),
    )
    view.figures = figures
    return figures


def build_state_artifacts(
    frame: pd.DataFrame,
    state: str,
    out_dir: Path,
    config: AppConfig,
    disease: str | None = None,
    year: str | None = None,
    geojson: dict[str, Any] | None = None,
) -> StateView:
    paths = build_output_paths(out_dir)
    view = build_state_view(frame, state, config, disease=disease, year=year, geojson=geojson)
    write_summary(view.payload(), paths.summary / f"state_{slugify(state)}.json")
    render_state_figures(view, out_dir, config)
    LOGGER.info("State view built for %s: %s figures", state, len(view.figures))
    return view
