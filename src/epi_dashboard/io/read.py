from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from epi_dashboard.io.schema import empty_observations, normalize_frame, valid_mask

LOGGER = logging.getLogger(__name__)


def empty_feature_collection() -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


@dataclass(frozen=True)
class LoadResult:
    frame: pd.DataFrame
    notice: str | None = None
    rows_read: int = 0
    rows_dropped: int = 0

    @property
    def ok(self) -> bool:
        return self.notice is None


def _load_failure(path: Path | None, reason: str) -> LoadResult:
    notice = f"Could not load primary dataset {path or '(not configured)'}: {reason}"
    LOGGER.warning(notice)
    return LoadResult(frame=empty_observations(), notice=notice)


def load_observations(csv_path: Path | None) -> LoadResult:
    """Read, normalize and filter the case dataset.

    A missing or unparseable file degrades to an empty frame plus a notice;
    it never raises. Rows lacking state, year or disease are dropped here.
    """
    if csv_path is None:
        return _load_failure(None, "no CSV path configured")
    if not csv_path.exists():
        return _load_failure(csv_path, "file not found")

    try:
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        raw = pd.read_csv(csv_path, encoding="utf-8-sig", dtype=str, skip_blank_lines=True)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        return _load_failure(csv_path, str(exc) or type(exc).__name__)

    normalized = normalize_frame(raw)
    mask = valid_mask(normalized)
    frame = normalized[mask].reset_index(drop=True)
    dropped = int((~mask).sum())
    if dropped:
        LOGGER.info("Dropped %s rows missing state, year or disease", dropped)
    LOGGER.info("Loaded %s observation rows from %s", len(frame), csv_path)
    return LoadResult(frame=frame, rows_read=int(len(raw)), rows_dropped=dropped)


def load_geojson(path: Path | None) -> dict[str, Any]:
    """Boundary polygons; an unusable file yields an empty FeatureCollection."""
    if path is None:
        return empty_feature_collection()
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("Could not load GeoJSON %s: %s", path, exc)
        return empty_feature_collection()

    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        LOGGER.warning("GeoJSON %s is not a FeatureCollection", path)
        return empty_feature_collection()
    return data
