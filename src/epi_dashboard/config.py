from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator


class PopulationPolicy(str, Enum):
    """How population/density are folded when a state has several rows."""

    first_seen = "first_seen"
    max = "max"


class DataConfig(BaseModel):
    csv_path: str | None = None
    geojson_path: str | None = None


class AggregationConfig(BaseModel):
    population_policy: PopulationPolicy = PopulationPolicy.first_seen


class ChartsConfig(BaseModel):
    top_n_diseases: int = Field(default=4, ge=1)
    histogram_bins: int = Field(default=4, ge=1)
    sort_mode: Literal[
        "cases_asc",
        "cases_desc",
        "alpha_asc",
        "alpha_desc",
        "pop_desc",
        "density_desc",
        "per100k_desc",
    ] = "cases_desc"
    histogram_normalize: Literal["cases", "per100k"] = "cases"
    scatter_per_capita: bool = False
    box_group: Literal["by_year", "by_state"] = "by_year"
    box_normalize: Literal["cases", "per100k"] = "cases"
    axis: Literal["linear", "log"] = "linear"
    distribution_style: Literal["box", "median_bar"] = "box"
    compare_default_count: int = Field(default=3, ge=1)
    time_series_normalize: Literal["cases", "per100k"] = "cases"


class MapConfig(BaseModel):
    thresholds: list[float] = Field(default_factory=lambda: [100000.0, 50000.0, 20000.0, 5000.0])
    colors: list[str] = Field(
        default_factory=lambda: ["#7f1d1d", "#cc3b3b", "#1f9bd6", "#5de1d1", "#e6f7ff"]
    )
    no_data_color: str = "#d1d5db"

    @model_validator(mode="after")
    def _check_ramp(self) -> "MapConfig":
        if len(self.colors) != len(self.thresholds) + 1:
            raise ValueError("map.colors must have exactly one more entry than map.thresholds")
        if list(self.thresholds) != sorted(self.thresholds, reverse=True):
            raise ValueError("map.thresholds must be sorted in descending order")
        return self


class CacheConfig(BaseModel):
    enabled: bool = True
    dir: str = ".cache"


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "parquet"
    figures_format: str = "png"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data: DataConfig = Field(default_factory=DataConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    charts: ChartsConfig = Field(default_factory=ChartsConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.data.csv_path = _resolve_optional_path(
        config.data.csv_path or os.getenv("EPI_DASHBOARD_DATA_CSV"),
        base_dir,
    )
    config.data.geojson_path = _resolve_optional_path(config.data.geojson_path, base_dir)
    config.cache.dir = _resolve_optional_path(config.cache.dir, base_dir) or str(base_dir)
    return config
