from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from epi_dashboard.config import AppConfig, MapConfig, PopulationPolicy, load_config


def test_load_config_resolves_paths_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "configs" / "config.yaml"
    config_path.parent.mkdir()
    config_path.write_text(
        yaml.safe_dump(
            {
                "data": {"csv_path": "../data/cases.csv", "geojson_path": "/abs/states.geojson"},
                "aggregation": {"population_policy": "max"},
                "cache": {"dir": "cache"},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.data.csv_path == str((tmp_path / "data" / "cases.csv").resolve())
    assert config.data.geojson_path == "/abs/states.geojson"
    assert config.cache.dir == str((tmp_path / "configs" / "cache").resolve())
    assert config.aggregation.population_policy is PopulationPolicy.max


def test_load_config_reads_csv_path_from_environment(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")
    monkeypatch.setenv("EPI_DASHBOARD_DATA_CSV", "env.csv")

    config = load_config(config_path)

    assert config.data.csv_path == str((tmp_path / "env.csv").resolve())
    assert config.data.geojson_path is None
    assert config.charts.top_n_diseases == 4
    assert config.aggregation.population_policy is PopulationPolicy.first_seen


def test_unknown_top_level_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"dashboards": {}})


def test_chart_options_are_validated() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"charts": {"sort_mode": "random"}})
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"charts": {"histogram_bins": 0}})


def test_map_ramp_must_match_thresholds() -> None:
    with pytest.raises(ValidationError, match="one more entry"):
        MapConfig(thresholds=[10.0, 5.0], colors=["#000", "#111"])
    with pytest.raises(ValidationError, match="descending"):
        MapConfig(thresholds=[5.0, 10.0], colors=["#000", "#111", "#222"])


def test_repository_default_config_loads() -> None:
    workspace = Path(__file__).resolve().parents[1]
    config = load_config(workspace / "configs" / "default.yaml")

    assert config.data.csv_path is not None
    assert config.data.csv_path.endswith("complete_disease_data.csv")
    assert config.map.thresholds == [100000.0, 50000.0, 20000.0, 5000.0]
    assert config.outputs.tables_format == "parquet"
