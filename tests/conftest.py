from __future__ import annotations

import json
from pathlib import Path

import matplotlib
import pandas as pd
import pytest

from epi_dashboard.io.schema import ObservationRow, observations_frame

matplotlib.use("Agg")


def _build_frame(*rows: tuple) -> pd.DataFrame:
    """Rows as (state, year, disease, cases, population[, density])."""
    return observations_frame(
        ObservationRow(
            state=row[0],
            year=row[1],
            disease=row[2],
            cases=float(row[3]),
            population=float(row[4]),
            population_density=float(row[5]) if len(row) > 5 else 0.0,
        )
        for row in rows
    )


def _square(lon: float, lat: float, size: float = 2.0) -> list[list[list[float]]]:
    return [
        [
            [lon, lat],
            [lon + size, lat],
            [lon + size, lat + size],
            [lon, lat + size],
            [lon, lat],
        ]
    ]


@pytest.fixture
def observations() -> pd.DataFrame:
    return _build_frame(
        ("California", "2019", "Flu", 100, 1000, 90),
        ("California", "2020", "Flu", 300, 1000, 90),
        ("California", "2020", "Measles", 5, 1000, 90),
        ("Texas", "2019", "Flu", 50, 2000, 40),
        ("Texas", "2020", "Flu", 20, 2000, 40),
        ("Texas", "2021", "Measles", 7, 2000, 40),
        ("Ohio", "2020", "Flu", 10, 0, 0),
    )


@pytest.fixture
def states_geojson() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "California"},
                "geometry": {"type": "Polygon", "coordinates": _square(-122.0, 34.0)},
            },
            {
                "type": "Feature",
                "properties": {"NAME": "Texas"},
                "bbox": [-106.0, 26.0, -94.0, 36.0],
                "geometry": {"type": "MultiPolygon", "coordinates": [_square(-100.0, 30.0)]},
            },
            {
                "type": "Feature",
                "properties": {"name": "Nevada"},
                "geometry": {"type": "Polygon", "coordinates": _square(-118.0, 38.0)},
            },
        ],
    }


@pytest.fixture
def dataset_files(tmp_path: Path, states_geojson: dict) -> dict[str, Path]:
    csv_path = tmp_path / "data" / "cases.csv"
    csv_path.parent.mkdir(parents=True)
    csv_path.write_text(
        "State,Year,Disease,Cases,Population,Population Density\n"
        "California,2019,Flu,100,1000,90\n"
        "California,2020,Flu,300,1000,90\n"
        "Texas,2019,Flu,50,2000,40\n"
        "Texas,2020,Flu,20,2000,40\n"
        "Texas,2020,Measles,7,2000,40\n",
        encoding="utf-8",
    )
    geojson_path = tmp_path / "data" / "states.geojson"
    geojson_path.write_text(json.dumps(states_geojson), encoding="utf-8")

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "data:\n"
        "  csv_path: data/cases.csv\n"
        "  geojson_path: data/states.geojson\n"
        "cache:\n"
        "  dir: cache\n"
        "outputs:\n"
        "  tables_format: csv\n",
        encoding="utf-8",
    )
    return {"csv": csv_path, "geojson": geojson_path, "config": config_path}


@pytest.fixture
def make_frame():
    return _build_frame
