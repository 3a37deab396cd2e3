from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import pandas as pd
from pydantic import BaseModel, ValidationError

from epi_dashboard.io.read import LoadResult, load_observations
from epi_dashboard.io.schema import CANONICAL_COLUMNS

LOGGER = logging.getLogger(__name__)

# Bump whenever the canonical columns or their coercion rules change.
CACHE_SCHEMA_VERSION = 1

DATASET_FILE = "dataset.parquet"
META_FILE = "dataset.meta.json"
PREFERENCES_FILE = "preferences.json"


class CacheMeta(BaseModel):
    schema_version: int
    source_path: str
    source_mtime_ns: int
    rows: int


class Preferences(BaseModel):
    theme: Literal["light", "dark"] = "light"


def _source_mtime_ns(source: Path) -> int:
    return int(source.stat().st_mtime_ns)


class DatasetCache:
    """On-disk copy of the normalized dataset, tagged with a schema version."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    @property
    def dataset_path(self) -> Path:
        return self.cache_dir / DATASET_FILE

    @property
    def meta_path(self) -> Path:
        return self.cache_dir / META_FILE

    def _is_current(self, meta: CacheMeta, source: Path) -> bool:
        if meta.schema_version != CACHE_SCHEMA_VERSION:
            return False
        if meta.source_path != str(source.resolve()):
            return False
        return source.exists() and meta.source_mtime_ns == _source_mtime_ns(source)

    def load(self, source: Path) -> pd.DataFrame | None:
        if not self.meta_path.exists() or not self.dataset_path.exists():
            return None
        try:
            meta = CacheMeta.model_validate_json(self.meta_path.read_text(encoding="utf-8"))
            if not self._is_current(meta, source):
                LOGGER.info("Dataset cache is stale; rebuilding from %s", source)
                return None
            frame = pd.read_parquet(self.dataset_path)
        except (OSError, ValueError, ValidationError) as exc:
            LOGGER.error("Failed to read cached dataset: %s", exc)
            self.clear()
            return None

        if list(frame.columns) != CANONICAL_COLUMNS:
            LOGGER.warning("Cached dataset has unexpected columns; discarding")
            self.clear()
            return None
        LOGGER.info("Loaded %s rows from dataset cache", len(frame))
        return frame

    def store(self, frame: pd.DataFrame, source: Path) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        frame.to_parquet(self.dataset_path, index=False)
        meta = CacheMeta(
            schema_version=CACHE_SCHEMA_VERSION,
            source_path=str(source.resolve()),
            source_mtime_ns=_source_mtime_ns(source),
            rows=int(len(frame)),
        )
        self.meta_path.write_text(meta.model_dump_json(indent=2), encoding="utf-8")

    def clear(self) -> bool:
        removed = False
        for path in (self.dataset_path, self.meta_path):
            if path.exists():
                path.unlink()
                removed = True
        return removed


def load_dataset_cached(csv_path: Path | None, cache: DatasetCache | None) -> LoadResult:
    """Serve the normalized dataset from cache, falling back to the CSV."""
    if cache is not None and csv_path is not None:
        cached = cache.load(csv_path)
        if cached is not None:
            return LoadResult(frame=cached, rows_read=int(len(cached)))

    result = load_observations(csv_path)
    if cache is not None and csv_path is not None and result.ok:
        try:
            cache.store(result.frame, csv_path)
        except OSError as exc:
            LOGGER.warning("Could not write dataset cache: %s", exc)
    return result


def _preferences_path(cache_dir: Path) -> Path:
    return cache_dir / PREFERENCES_FILE


def load_preferences(cache_dir: Path) -> Preferences:
    path = _preferences_path(cache_dir)
    if not path.exists():
        return Preferences()
    try:
        return Preferences.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        LOGGER.warning("Ignoring unreadable preferences %s: %s", path, exc)
        return Preferences()


def get_theme(cache_dir: Path) -> str:
    return load_preferences(cache_dir).theme


def set_theme(cache_dir: Path, theme: str) -> str:
    preferences = Preferences(theme=theme)
    cache_dir.mkdir(parents=True, exist_ok=True)
    _preferences_path(cache_dir).write_text(preferences.model_dump_json(), encoding="utf-8")
    return preferences.theme


def toggle_theme(cache_dir: Path) -> str:
    return set_theme(cache_dir, "light" if get_theme(cache_dir) == "dark" else "dark")
