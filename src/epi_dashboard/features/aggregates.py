from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from epi_dashboard.config import PopulationPolicy
from epi_dashboard.features.grouping import unique_sorted
from epi_dashboard.io.schema import (
    PER_100K,
    ObservationRow,
    coerce_number,
    ensure_observations,
    rate_per_100k,
)

SUMMARY_COLUMNS = ["state", "cases", "population", "density", "per100k"]


@dataclass(frozen=True)
class StateSummary:
    state: str
    cases: float
    population: float
    density: float
    per100k: float


@dataclass(frozen=True)
class StateProfile:
    state: str
    disease: str | None
    year: str | None
    total_cases: float
    population: float
    density: float
    rows: int

    @property
    def per100k(self) -> float:
        return rate_per_100k(self.total_cases, self.population)


def summary_per100k(cases: float, population: float) -> float:
    """Rate for an aggregated summary; the denominator is guarded at 1."""
    if population > 0:
        return (cases / max(population, 1.0)) * PER_100K
    return 0.0


def _is_unset(value: object) -> bool:
    return value is None or str(value) == ""


def filter_observations(
    frame: pd.DataFrame,
    disease: str | None = None,
    year: str | int | None = None,
    state: str | None = None,
) -> pd.DataFrame:
    mask = pd.Series(True, index=frame.index)
    if not _is_unset(disease):
        mask &= frame["disease"] == disease
    if not _is_unset(year):
        mask &= frame["year"].astype(str) == str(year)
    if not _is_unset(state):
        mask &= frame["state"] == state
    return frame[mask]


def _fold_demographic(series: pd.Series, groups: pd.Series, policy: PopulationPolicy) -> pd.Series:
    if policy == PopulationPolicy.max:
        return series.groupby(groups, sort=False).max()
    # first_seen: zeros mean "unknown", so the first non-zero value wins.
    return series.where(series > 0).groupby(groups, sort=False).first()


def build_state_summary_frame(
    data: pd.DataFrame | Iterable[ObservationRow],
    disease: str | None = None,
    year: str | int | None = None,
    policy: PopulationPolicy | str = PopulationPolicy.first_seen,
) -> pd.DataFrame:
    """Per-state totals in first-appearance order.

    ``cases`` is summed; ``population``/``density`` follow ``policy`` rather
    than being summed; ``per100k`` is derived after folding.
    """
    policy = PopulationPolicy(policy)
    frame = ensure_observations(data)
    subset = filter_observations(frame, disease=disease, year=year)
    subset = subset[subset["state"].astype(str) != ""]
    if subset.empty:
        return pd.DataFrame({column: pd.Series(dtype=float) for column in SUMMARY_COLUMNS}).astype(
            {"state": object}
        )

    groups = subset["state"]
    cases = subset["cases"].astype(float).groupby(groups, sort=False).sum()
    population = _fold_demographic(subset["population"].astype(float), groups, policy)
    density = _fold_demographic(subset["population_density"].astype(float), groups, policy)

    summary = pd.DataFrame(
        {
            "cases": cases,
            "population": population.reindex(cases.index).fillna(0.0),
            "density": density.reindex(cases.index).fillna(0.0),
        }
    )
    summary.index.name = "state"
    summary = summary.reset_index()
    summary["per100k"] = [
        summary_per100k(c, p) for c, p in zip(summary["cases"], summary["population"])
    ]
    return summary[SUMMARY_COLUMNS]


def aggregate_by_state(
    data: pd.DataFrame | Iterable[ObservationRow],
    disease: str | None = None,
    year: str | int | None = None,
    policy: PopulationPolicy | str = PopulationPolicy.first_seen,
) -> dict[str, StateSummary]:
    summary = build_state_summary_frame(data, disease=disease, year=year, policy=policy)
    return {
        str(row.state): StateSummary(
            state=str(row.state),
            cases=float(row.cases),
            population=float(row.population),
            density=float(row.density),
            per100k=float(row.per100k),
        )
        for row in summary.itertuples(index=False)
    }


def summaries_to_frame(summaries: Iterable[StateSummary]) -> pd.DataFrame:
    records = [
        {
            "state": item.state,
            "cases": item.cases,
            "population": item.population,
            "density": item.density,
            "per100k": item.per100k,
        }
        for item in summaries
    ]
    return pd.DataFrame.from_records(records, columns=SUMMARY_COLUMNS)


def totals_by_category(
    frame: pd.DataFrame,
    column: str,
    value: str = "cases",
) -> pd.Series:
    """Summed ``value`` per distinct ``column`` entry, first-appearance order."""
    subset = frame[frame[column].astype(str) != ""]
    return subset[value].astype(float).groupby(subset[column], sort=False).sum()


def totals_by_year(
    frame: pd.DataFrame,
    state: str | None = None,
    disease: str | None = None,
    years: Sequence[str] | None = None,
) -> pd.Series:
    """Cases per year, zero-filled over ``years`` (default: the frame's years)."""
    if years is None:
        base = filter_observations(frame, state=state)
        years = unique_sorted(base["year"].tolist())
    subset = filter_observations(frame, disease=disease, state=state)
    totals = subset["cases"].astype(float).groupby(subset["year"].astype(str)).sum()
    return totals.reindex([str(year) for year in years], fill_value=0.0)


def per100k_series(values: Sequence[float], population: float) -> list[float]:
    # Matches the state page: unknown population scales by 1, not 0.
    denominator = population or 1.0
    return [(float(value) / denominator) * PER_100K for value in values]


def year_series_for_diseases(
    frame: pd.DataFrame,
    diseases: Sequence[str],
    years: Sequence[str],
    state: str | None = None,
) -> dict[str, list[float]]:
    return {
        disease: totals_by_year(frame, state=state, disease=disease, years=years).tolist()
        for disease in diseases
    }


def state_profile(
    frame: pd.DataFrame,
    state: str,
    disease: str | None = None,
    year: str | None = None,
) -> StateProfile:
    """Header figures for one state.

    Totals honour the disease/year filter; population and density come
    from the state's first row regardless of filter.
    """
    state_rows = filter_observations(frame, state=state)
    filtered = filter_observations(state_rows, disease=disease, year=year)
    population = float(state_rows["population"].iloc[0]) if len(state_rows) else 0.0
    density = float(state_rows["population_density"].iloc[0]) if len(state_rows) else 0.0
    return StateProfile(
        state=state,
        disease=None if _is_unset(disease) else disease,
        year=None if _is_unset(year) else str(year),
        total_cases=float(filtered["cases"].sum()),
        population=population,
        density=density,
        rows=int(len(state_rows)),
    )


def scatter_points(
    summaries: dict[str, StateSummary],
    per_capita: bool = False,
) -> list[dict[str, Any]]:
    return [
        {
            "x": item.density,
            "y": item.per100k if per_capita else item.cases,
            "label": state,
        }
        for state, item in summaries.items()
    ]


_STATE_SCATTER_X = ("population", "population_density", "year")
_STATE_SCATTER_Y = ("cases", "per100k")


def state_scatter_points(
    frame: pd.DataFrame,
    state: str,
    x: str = "population",
    y: str = "cases",
) -> list[dict[str, Any]]:
    """One point per row of ``state``; per100k guards population with 1."""
    if x not in _STATE_SCATTER_X:
        raise ValueError(f"Unsupported scatter x-axis: {x}")
    if y not in _STATE_SCATTER_Y:
        raise ValueError(f"Unsupported scatter y-axis: {y}")

    points: list[dict[str, Any]] = []
    for row in filter_observations(frame, state=state).itertuples(index=False):
        if x == "year":
            x_value = coerce_number(row.year)
        else:
            x_value = float(getattr(row, x))
        cases = float(row.cases)
        y_value = cases if y == "cases" else (cases / (float(row.population) or 1.0)) * PER_100K
        points.append({"x": x_value, "y": y_value, "year": row.year, "disease": row.disease})
    return points


def year_disease_tree(frame: pd.DataFrame, state: str) -> dict[str, Any]:
    """Sunburst hierarchy: state -> year -> disease with summed cases."""
    totals: dict[str, dict[str, float]] = {}
    for row in filter_observations(frame, state=state).itertuples(index=False):
        year = str(row.year) or "Unknown"
        disease = str(row.disease) or "Unknown"
        by_disease = totals.setdefault(year, {})
        by_disease[disease] = by_disease.get(disease, 0.0) + float(row.cases)
    return {
        "name": state,
        "children": [
            {
                "name": year,
                "children": [
                    {"name": disease, "value": value} for disease, value in diseases.items()
                ],
            }
            for year, diseases in totals.items()
        ],
    }


def disease_year_matrix(frame: pd.DataFrame, state: str) -> pd.DataFrame:
    """Disease x year case totals for one state, zero-filled."""
    subset = filter_observations(frame, state=state)
    diseases = unique_sorted(subset["disease"].tolist())
    years = unique_sorted(subset["year"].tolist())
    if subset.empty:
        return pd.DataFrame(index=pd.Index([], name="disease"))
    matrix = subset.pivot_table(
        index="disease",
        columns="year",
        values="cases",
        aggfunc="sum",
        fill_value=0.0,
    )
    return matrix.reindex(index=diseases, columns=years, fill_value=0.0).astype(float)
