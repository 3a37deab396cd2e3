from __future__ import annotations

from enum import Enum
from typing import Literal

import pandas as pd

from epi_dashboard.features.aggregates import filter_observations
from epi_dashboard.features.grouping import quantile_summary, unique_sorted
from epi_dashboard.io.schema import PER_100K


class GroupingMode(str, Enum):
    """Which axis becomes a box: one per year (across states) or per state."""

    by_year = "by_year"
    by_state = "by_state"

    @property
    def group_column(self) -> str:
        return "year" if self is GroupingMode.by_year else "state"

    @property
    def member_column(self) -> str:
        return "state" if self is GroupingMode.by_year else "year"


def _cell_values(frame: pd.DataFrame, normalize: str) -> pd.Series:
    """Per (state, year) value: summed cases, optionally per 100k."""
    keys = [frame["state"], frame["year"].astype(str)]
    cases = frame["cases"].astype(float).groupby(keys).sum()
    if normalize != "per100k":
        return cases
    # Population of the first row seen for the pair; 0 means unknown -> 1.
    population = frame["population"].astype(float).groupby(keys).first()
    return cases / population.where(population > 0, 1.0) * PER_100K


def distribution_groups(
    frame: pd.DataFrame,
    mode: GroupingMode | str = GroupingMode.by_year,
    normalize: Literal["cases", "per100k"] = "cases",
    disease: str | None = None,
) -> dict[str, list[float]]:
    """Values feeding one box per group; absent (state, year) pairs count as 0."""
    if not isinstance(mode, (GroupingMode, str)):
        raise TypeError(f"Unsupported grouping mode: {mode!r}")
    mode = GroupingMode(mode)
    if normalize not in ("cases", "per100k"):
        raise ValueError(f"Unsupported normalization: {normalize}")

    subset = filter_observations(frame, disease=disease)
    subset = subset[(subset["state"] != "") & (subset["year"].astype(str) != "")]
    if subset.empty:
        return {}

    cells = _cell_values(subset, normalize)
    groups = unique_sorted(subset[mode.group_column].astype(str).tolist())
    members = unique_sorted(subset[mode.member_column].astype(str).tolist())

    result: dict[str, list[float]] = {}
    for group in groups:
        values = []
        for member in members:
            state, year = (member, group) if mode is GroupingMode.by_year else (group, member)
            values.append(float(cells.get((state, year), 0.0)))
        result[str(group)] = values
    return result


def distribution_summaries(groups: dict[str, list[float]]) -> dict[str, dict[str, float]]:
    return {label: quantile_summary(values) for label, values in groups.items()}
