from __future__ import annotations

import json
from pathlib import Path

from epi_dashboard.io.read import load_geojson, load_observations


def test_load_observations_normalizes_and_drops_invalid_rows(tmp_path: Path) -> None:
    csv_path = tmp_path / "cases.csv"
    csv_path.write_text(
        "﻿State,Year,Disease,Cases,Population,Population Density\n"
        "California,2020,Flu,100,1000,10\n"
        ",2020,Flu,5,10,1\n"
        "Texas,,Flu,5,10,1\n"
        "\n"
        "Texas,2021,Measles,n/a,2000,\n",
        encoding="utf-8",
    )

    result = load_observations(csv_path)

    assert result.ok
    assert result.rows_dropped == 2
    assert result.frame["state"].tolist() == ["California", "Texas"]
    assert result.frame["cases"].tolist() == [100.0, 0.0]
    assert result.frame["population_density"].tolist() == [10.0, 0.0]
    assert result.frame["year"].tolist() == ["2020", "2021"]


def test_load_observations_degrades_to_empty_frame_with_notice(tmp_path: Path) -> None:
    missing = load_observations(tmp_path / "missing.csv")
    assert missing.frame.empty
    assert missing.notice is not None
    assert "file not found" in missing.notice

    empty_path = tmp_path / "empty.csv"
    empty_path.write_text("", encoding="utf-8")
    empty = load_observations(empty_path)
    assert empty.frame.empty
    assert not empty.ok

    unconfigured = load_observations(None)
    assert unconfigured.frame.empty
    assert not unconfigured.ok


def test_load_geojson_returns_empty_collection_on_bad_input(tmp_path: Path) -> None:
    assert load_geojson(None)["features"] == []
    assert load_geojson(tmp_path / "missing.geojson")["features"] == []

    broken = tmp_path / "broken.geojson"
    broken.write_text("{not json", encoding="utf-8")
    assert load_geojson(broken)["features"] == []

    not_collection = tmp_path / "list.geojson"
    not_collection.write_text("[]", encoding="utf-8")
    assert load_geojson(not_collection)["type"] == "FeatureCollection"

    good = tmp_path / "good.geojson"
    good.write_text(
        json.dumps({"type": "FeatureCollection", "features": [{"properties": {"name": "Ohio"}}]}),
        encoding="utf-8",
    )
    assert len(load_geojson(good)["features"]) == 1


def test_load_observations_falls_back_to_alias_columns_per_row(tmp_path: Path) -> None:
    csv_path = tmp_path / "cases.csv"
    csv_path.write_text(
        "state,location,year,disease,cases\n"
        ",Utah,2020,Flu,5\n"
        "CA,,2020,Flu,3\n",
        encoding="utf-8",
    )

    result = load_observations(csv_path)

    assert result.rows_dropped == 0
    assert result.frame["state"].tolist() == ["Utah", "CA"]
