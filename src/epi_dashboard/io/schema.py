from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import pandas as pd

PER_100K = 100000.0

TEXT_FIELDS = ("state", "year", "disease")
NUMERIC_FIELDS = ("cases", "population", "population_density")
CANONICAL_COLUMNS = [*TEXT_FIELDS, *NUMERIC_FIELDS, "per100k"]

# Ordered source-header aliases per canonical field; the first present one wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "state": ("state", "State", "STATE", "location", "province"),
    "year": ("year", "Year", "YEAR", "yr"),
    "disease": ("disease", "Disease", "condition"),
    "cases": ("cases", "Cases", "value", "count"),
    "population": ("population", "Population", "pop"),
    "population_density": (
        "population_density",
        "population density",
        "density",
        "pop_density",
    ),
}


def rate_per_100k(cases: float, population: float) -> float:
    """Cases per 100,000 residents; 0 when the population is unknown."""
    if population > 0:
        return (cases / population) * PER_100K
    return 0.0


@dataclass(frozen=True)
class ObservationRow:
    state: str = ""
    year: str = ""
    disease: str = ""
    cases: float = 0.0
    population: float = 0.0
    population_density: float = 0.0

    @property
    def per100k(self) -> float:
        return rate_per_100k(self.cases, self.population)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["per100k"] = self.per100k
        return record


def _fold_key(key: object) -> str:
    return str(key).strip().lower()


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def pick_value(record: Mapping[str, Any] | None, aliases: Iterable[str]) -> Any:
    """Return the first present, non-missing value under any of ``aliases``.

    Exact-case keys are tried first in alias order; if none match, a
    case-insensitive, whitespace-trimmed pass runs over the same aliases.
    """
    if not record:
        return None
    aliases = tuple(aliases)
    for alias in aliases:
        if alias in record and not _is_missing(record[alias]):
            return record[alias]

    folded: dict[str, Any] = {}
    for key, value in record.items():
        folded.setdefault(_fold_key(key), value)
    for alias in aliases:
        value = folded.get(_fold_key(alias))
        if not _is_missing(value):
            return value
    return None


def coerce_number(value: Any) -> float:
    """Tolerant numeric coercion: anything unusable becomes 0.0."""
    if _is_missing(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_text(value: Any) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        # pandas reads integer-looking columns with blanks as float.
        return str(int(value))
    return str(value).strip()


def normalize_row(record: Mapping[str, Any] | None) -> ObservationRow:
    """Map a loosely-typed record onto ``ObservationRow``; never raises.

    Rows come back possibly empty; dropping invalid rows is up to the caller
    (see ``is_valid_row``).
    """
    if not isinstance(record, Mapping):
        record = {}
    return ObservationRow(
        state=coerce_text(pick_value(record, FIELD_ALIASES["state"])),
        year=coerce_text(pick_value(record, FIELD_ALIASES["year"])),
        disease=coerce_text(pick_value(record, FIELD_ALIASES["disease"])),
        cases=coerce_number(pick_value(record, FIELD_ALIASES["cases"])),
        population=coerce_number(pick_value(record, FIELD_ALIASES["population"])),
        population_density=coerce_number(
            pick_value(record, FIELD_ALIASES["population_density"])
        ),
    )


def is_valid_row(row: ObservationRow) -> bool:
    return bool(row.state and row.year and row.disease)


def resolve_column_candidates(columns: Iterable[object]) -> dict[str, list[str]]:
    """Map canonical field -> every source column that may supply it, in lookup order.

    Exact-case alias matches come first, then the first column per folded
    header, mirroring the two passes of ``pick_value``.
    """
    available = [str(column) for column in columns]
    exact = set(available)
    lowered: dict[str, str] = {}
    for column in available:
        lowered.setdefault(_fold_key(column), column)

    resolved: dict[str, list[str]] = {}
    for field, aliases in FIELD_ALIASES.items():
        candidates = [alias for alias in aliases if alias in exact]
        for alias in aliases:
            column = lowered.get(_fold_key(alias))
            if column is not None and column not in candidates:
                candidates.append(column)
        if candidates:
            resolved[field] = candidates
    return resolved


def resolve_columns(columns: Iterable[object]) -> dict[str, str]:
    """Map canonical field -> preferred source column using the alias table."""
    return {
        field: candidates[0]
        for field, candidates in resolve_column_candidates(columns).items()
    }


def empty_observations() -> pd.DataFrame:
    frame = pd.DataFrame({column: pd.Series(dtype=object) for column in TEXT_FIELDS})
    for column in [*NUMERIC_FIELDS, "per100k"]:
        frame[column] = pd.Series(dtype=float)
    return frame


def _with_per100k(frame: pd.DataFrame) -> pd.DataFrame:
    population = frame["population"].to_numpy(dtype=float)
    cases = frame["cases"].to_numpy(dtype=float)
    safe_population = np.where(population > 0, population, 1.0)
    frame["per100k"] = np.where(population > 0, cases / safe_population * PER_100K, 0.0)
    return frame


def _coalesce(df: pd.DataFrame, candidates: list[str]) -> pd.Series | None:
    """First non-missing value per row across ``candidates``, in order."""
    if not candidates:
        return None
    values = df[candidates[0]]
    for column in candidates[1:]:
        values = values.where(values.notna(), df[column])
    return values


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Vectorized ``normalize_row`` over a raw frame.

    Each field falls back across its alias columns row by row, so a blank
    ``state`` cell is filled from ``location`` just as ``pick_value`` would.
    Invalid rows are kept; filtering stays with the caller.
    """
    if df is None or df.empty:
        return empty_observations()

    # Duplicate raw headers would make df[source] a frame; keep the first.
    df = df.loc[:, ~pd.Index(df.columns.astype(str)).duplicated()]
    df.columns = df.columns.astype(str)
    candidates = resolve_column_candidates(df.columns)

    normalized = pd.DataFrame(index=df.index)
    for field in TEXT_FIELDS:
        source = _coalesce(df, candidates.get(field, []))
        normalized[field] = source.map(coerce_text) if source is not None else ""
    for field in NUMERIC_FIELDS:
        source = _coalesce(df, candidates.get(field, []))
        normalized[field] = source.map(coerce_number).astype(float) if source is not None else 0.0
    normalized = normalized.reset_index(drop=True)
    return _with_per100k(normalized)[CANONICAL_COLUMNS]


def valid_mask(frame: pd.DataFrame) -> pd.Series:
    return (frame["state"] != "") & (frame["year"] != "") & (frame["disease"] != "")


def observations_frame(rows: Iterable[ObservationRow]) -> pd.DataFrame:
    """Canonical frame from ``ObservationRow`` values."""
    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise TypeError(f"Expected an iterable of ObservationRow, got {type(rows).__name__}")
    records = []
    for row in rows:
        if not isinstance(row, ObservationRow):
            raise TypeError(f"Expected ObservationRow, got {type(row).__name__}")
        records.append(asdict(row))
    if not records:
        return empty_observations()
    frame = pd.DataFrame.from_records(records)
    for field in NUMERIC_FIELDS:
        frame[field] = frame[field].astype(float)
    return _with_per100k(frame)[CANONICAL_COLUMNS]


def ensure_observations(data: pd.DataFrame | Iterable[ObservationRow]) -> pd.DataFrame:
    """Accept either a canonical frame or ``ObservationRow`` values."""
    if isinstance(data, pd.DataFrame):
        missing = [column for column in CANONICAL_COLUMNS if column not in data.columns]
        if missing:
            raise ValueError(f"Observation frame missing column(s): {', '.join(missing)}")
        return data
    return observations_frame(data)
