from __future__ import annotations

from pathlib import Path

from epi_dashboard.config import MapConfig
from epi_dashboard.features.aggregates import StateSummary
from epi_dashboard.viz.maps import (
    DEFAULT_CENTER,
    color_for_value,
    feature_center,
    feature_name,
    find_feature,
    plot_choropleth,
    style_features,
)


def test_feature_name_checks_common_properties() -> None:
    assert feature_name({"properties": {"name": "Ohio"}}) == "Ohio"
    assert feature_name({"properties": {"NAME": "Utah"}}) == "Utah"
    assert feature_name({"properties": {"STATE_NAME": "Iowa"}}) == "Iowa"
    assert feature_name({"properties": None}) == ""
    assert feature_name({}) == ""


def test_color_for_value_walks_thresholds_from_the_top() -> None:
    config = MapConfig()
    assert color_for_value(150000, config) == config.colors[0]
    assert color_for_value(60000, config) == config.colors[1]
    assert color_for_value(6000, config) == config.colors[3]
    assert color_for_value(5000, config) == config.colors[-1]
    assert color_for_value(0) == MapConfig().colors[-1]


def test_style_features_marks_no_data_without_mutating_input(states_geojson: dict) -> None:
    summaries = {
        "California": StateSummary("California", 120000.0, 1000.0, 90.0, 0.0),
        "Texas": StateSummary("Texas", 10.0, 2000.0, 40.0, 0.0),
    }
    config = MapConfig()

    styled = style_features(states_geojson, summaries, config=config)

    by_name = {feature_name(feature): feature["properties"] for feature in styled["features"]}
    assert by_name["California"]["style"]["fillColor"] == config.colors[0]
    assert by_name["California"]["popup"]["cases"] == 120000.0
    assert by_name["Texas"]["has_data"] is True
    assert by_name["Nevada"]["has_data"] is False
    assert by_name["Nevada"]["style"]["fillColor"] == config.no_data_color
    assert by_name["Nevada"]["popup"]["cases"] is None
    assert "style" not in states_geojson["features"][0]["properties"]


def test_style_features_tolerates_empty_geojson() -> None:
    assert style_features({}, {})["features"] == []


def test_feature_center_prefers_bbox_then_geometry(states_geojson: dict) -> None:
    california, texas, _ = states_geojson["features"]
    assert feature_center(texas) == [31.0, -100.0]
    assert feature_center(california) == [35.0, -121.0]
    assert feature_center({"geometry": None}) == DEFAULT_CENTER
    assert feature_center({"bbox": ["a", "b", "c", "d"]}) == DEFAULT_CENTER


def test_find_feature(states_geojson: dict) -> None:
    assert find_feature(states_geojson, "Texas") is states_geojson["features"][1]
    assert find_feature(states_geojson, "Alaska") is None


def test_plot_choropleth_writes_figure(tmp_path: Path, states_geojson: dict) -> None:
    styled = style_features(states_geojson, {})
    output = plot_choropleth(styled, tmp_path / "map.png", highlight="Texas")

    assert output == tmp_path / "map.png"
    assert output.exists()
    assert plot_choropleth({"features": []}, tmp_path / "empty.png") is None
    assert plot_choropleth({"features": [{"properties": {}}]}, tmp_path / "none.png") is None
