from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd

from epi_dashboard.config import AppConfig
from epi_dashboard.features.grouping import example_selection, unique_sorted, years_by_disease
from epi_dashboard.io.cache import DatasetCache, load_dataset_cached
from epi_dashboard.io.read import LoadResult, load_geojson

LOGGER = logging.getLogger(__name__)


def dataset_cache(config: AppConfig) -> DatasetCache | None:
    if not config.cache.enabled:
        return None
    return DatasetCache(Path(config.cache.dir))


def load_dataset(config: AppConfig) -> LoadResult:
    """Normalized dataset handle for one run; callers pass it around explicitly."""
    csv_path = Path(config.data.csv_path) if config.data.csv_path else None
    return load_dataset_cached(csv_path, dataset_cache(config))


def load_boundaries(config: AppConfig) -> dict[str, Any]:
    path = Path(config.data.geojson_path) if config.data.geojson_path else None
    return load_geojson(path)


def build_index(frame: pd.DataFrame) -> dict[str, Any]:
    """Selector options: diseases, the years observed per disease, an example pick."""
    diseases = [str(disease) for disease in unique_sorted(frame["disease"].tolist())]
    return {
        "diseases": diseases,
        "years_by_disease": {
            disease: [str(year) for year in years]
            for disease, years in years_by_disease(frame, diseases).items()
        },
        "example": example_selection(frame),
    }


def draw_figure(
    figures: dict[str, Path],
    name: str,
    draw: Callable[[], Path | None],
) -> None:
    """Run one figure draw; failures are logged without stopping sibling draws."""
    try:
        path = draw()
    except Exception:
        LOGGER.exception("Failed rendering figure %s", name)
        return
    if path is not None:
        figures[name] = path
