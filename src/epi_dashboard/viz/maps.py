from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt
from matplotlib.patches import Polygon

from epi_dashboard.config import MapConfig
from epi_dashboard.features.aggregates import StateSummary
from epi_dashboard.viz.common import save_figure

NAME_PROPERTIES = ("name", "NAME", "STATE_NAME")
DEFAULT_CENTER = [37.8, -96.0]


def feature_name(feature: Mapping[str, Any]) -> str:
    properties = feature.get("properties") or {}
    for key in NAME_PROPERTIES:
        value = properties.get(key)
        if value:
            return str(value)
    return ""


def color_for_value(value: float, config: MapConfig | None = None) -> str:
    config = config or MapConfig()
    for threshold, color in zip(config.thresholds, config.colors):
        if value > threshold:
            return color
    return config.colors[-1]


def _iter_rings(geometry: Mapping[str, Any] | None) -> Iterator[list[list[float]]]:
    if not geometry:
        return
    kind = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if kind == "Polygon":
        polygons = [coordinates]
    elif kind == "MultiPolygon":
        polygons = coordinates
    else:
        return
    for polygon in polygons:
        # Outer ring only; holes are not drawn.
        if polygon:
            yield polygon[0]


def feature_center(feature: Mapping[str, Any]) -> list[float]:
    """[lat, lon] from the bbox, else the coordinate extent, else the US center."""
    bbox = feature.get("bbox")
    if isinstance(bbox, Sequence) and len(bbox) >= 4:
        try:
            min_x, min_y, max_x, max_y = (float(value) for value in bbox[:4])
            return [(min_y + max_y) / 2.0, (min_x + max_x) / 2.0]
        except (TypeError, ValueError):
            pass
    xs: list[float] = []
    ys: list[float] = []
    for ring in _iter_rings(feature.get("geometry")):
        for point in ring:
            if len(point) >= 2:
                xs.append(float(point[0]))
                ys.append(float(point[1]))
    if xs and ys:
        return [(min(ys) + max(ys)) / 2.0, (min(xs) + max(xs)) / 2.0]
    return list(DEFAULT_CENTER)


def find_feature(geojson: Mapping[str, Any], name: str) -> dict[str, Any] | None:
    for feature in geojson.get("features") or []:
        if feature_name(feature) == name:
            return feature
    return None


def style_features(
    geojson: Mapping[str, Any],
    summaries: Mapping[str, StateSummary],
    value_key: str = "cases",
    config: MapConfig | None = None,
) -> dict[str, Any]:
    """Copy of ``geojson`` with a fill style and popup fields per feature.

    Features without a matching summary are kept and styled as no-data.
    """
    config = config or MapConfig()
    styled = {"type": "FeatureCollection", "features": []}
    for feature in geojson.get("features") or []:
        item = copy.deepcopy(feature)
        name = feature_name(item)
        summary = summaries.get(name)
        properties = dict(item.get("properties") or {})
        if summary is None:
            fill = config.no_data_color
            properties["popup"] = {"name": name, "cases": None, "population": None, "density": None}
        else:
            fill = color_for_value(float(getattr(summary, value_key)), config)
            properties["popup"] = {
                "name": name,
                "cases": summary.cases,
                "population": summary.population,
                "density": summary.density,
            }
        properties["has_data"] = summary is not None
        properties["style"] = {"fillColor": fill, "weight": 1, "color": "#fff", "fillOpacity": 0.95}
        item["properties"] = properties
        styled["features"].append(item)
    return styled


def plot_choropleth(
    styled: Mapping[str, Any],
    output_path: Path,
    title: str = "Cases by state",
    highlight: str | None = None,
) -> Path | None:
    features = styled.get("features") or []
    if not features:
        return None

    fig, ax = plt.subplots(figsize=(12, 7))
    drew = False
    for feature in features:
        properties = feature.get("properties") or {}
        style = properties.get("style") or {}
        fill = style.get("fillColor", "#d1d5db")
        edge = "#111827" if highlight and feature_name(feature) == highlight else "#ffffff"
        for ring in _iter_rings(feature.get("geometry")):
            points = [point[:2] for point in ring if len(point) >= 2]
            if len(points) < 3:
                continue
            ax.add_patch(Polygon(points, closed=True, facecolor=fill, edgecolor=edge, linewidth=0.6))
            drew = True
    if not drew:
        plt.close(fig)
        return None
    ax.autoscale_view()
    ax.set_aspect("equal", adjustable="datalim")
    ax.set_axis_off()
    ax.set_title(title)
    return save_figure(output_path)
