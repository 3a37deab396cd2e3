from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from epi_dashboard.features.aggregates import StateSummary

MISSING_LABELS = {"", "NA"}

EXAMPLE_FALLBACK = {"state": "California", "disease": "Influenza", "year": "2018"}


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if not math.isnan(number) else None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() in MISSING_LABELS


def unique_sorted(values: Iterable[Any]) -> list[Any]:
    """Distinct non-blank values; numeric order when all parse, else lexicographic."""
    seen: dict[Any, None] = {}
    for value in values:
        if _is_blank(value):
            continue
        seen.setdefault(value, None)
    distinct = list(seen)

    numbers = [_as_number(value) for value in distinct]
    if distinct and all(number is not None for number in numbers):
        order = sorted(range(len(distinct)), key=lambda index: numbers[index])
        return [distinct[index] for index in order]
    return sorted(distinct, key=str)


def top_n_by_total(
    frame: pd.DataFrame,
    category: str,
    n: int,
    value: str = "cases",
) -> list[str]:
    """Categories with the largest summed ``value``; ties keep first appearance."""
    if n <= 0 or frame.empty:
        return []
    subset = frame[frame[category].astype(str) != ""]
    totals = subset[value].astype(float).groupby(subset[category], sort=False).sum()
    ranked = totals.sort_values(ascending=False, kind="mergesort")
    return [str(key) for key in ranked.index[:n]]


def years_by_disease(frame: pd.DataFrame, diseases: Sequence[str]) -> dict[str, list[str]]:
    return {
        disease: unique_sorted(frame.loc[frame["disease"] == disease, "year"].tolist())
        for disease in diseases
    }


def common_years(years_by_category: Mapping[str, Iterable[Any]]) -> list[Any]:
    """Years observed in every category; missing years are excluded, not padded."""
    if not years_by_category:
        return []
    sets = [set(years) for years in years_by_category.values()]
    shared = set.intersection(*sets)
    first = next(iter(years_by_category.values()))
    return unique_sorted(year for year in first if year in shared)


class SortMode(str, Enum):
    cases_asc = "cases_asc"
    cases_desc = "cases_desc"
    alpha_asc = "alpha_asc"
    alpha_desc = "alpha_desc"
    pop_desc = "pop_desc"
    density_desc = "density_desc"
    per100k_desc = "per100k_desc"

    @classmethod
    def parse(cls, value: "SortMode | str | None") -> "SortMode":
        try:
            return cls(value)
        except ValueError:
            return cls.cases_desc


_SORT_KEYS: dict[SortMode, tuple[str, bool]] = {
    SortMode.cases_asc: ("cases", False),
    SortMode.cases_desc: ("cases", True),
    SortMode.alpha_asc: ("state", False),
    SortMode.alpha_desc: ("state", True),
    SortMode.pop_desc: ("population", True),
    SortMode.density_desc: ("density", True),
    SortMode.per100k_desc: ("per100k", True),
}


def rank_summaries(
    summaries: Iterable["StateSummary"],
    mode: SortMode | str = SortMode.cases_desc,
) -> list["StateSummary"]:
    """Stable sort of state summaries; unknown modes fall back to cases_desc."""
    attribute, descending = _SORT_KEYS[SortMode.parse(mode)]
    items = list(summaries)
    if attribute == "state":
        return sorted(items, key=lambda item: str(item.state).casefold(), reverse=descending)
    # sorted() is stable under reverse=True as well, so ties keep input order.
    return sorted(items, key=lambda item: float(getattr(item, attribute)), reverse=descending)


def round_bin_width(width: float) -> float:
    """Round to the nearest multiple of the width's power of ten (437 -> 400)."""
    if width <= 0 or not math.isfinite(width):
        return 1.0
    unit = 10.0 ** math.floor(math.log10(width))
    rounded = math.floor(width / unit + 0.5) * unit
    if rounded == 0:
        return unit
    return rounded


@dataclass
class HistogramBin:
    lower: float
    upper: float
    count: int = 0
    members: list[tuple[str, float]] = field(default_factory=list)

    @property
    def label(self) -> str:
        width = self.upper - self.lower
        if float(width).is_integer() and width >= 1 and float(self.lower).is_integer():
            return f"{int(self.lower):,}–{int(self.upper) - 1:,}"
        return f"{self.lower:,.2f}–{self.upper:,.2f}"

    def top_members(self, limit: int = 3) -> list[tuple[str, float]]:
        return sorted(self.members, key=lambda member: member[1], reverse=True)[:limit]


def build_histogram(
    values: Mapping[str, float] | Sequence[float],
    bin_count: int = 4,
) -> list[HistogramBin]:
    """Equal-width bins starting at ``floor(min)`` with a rounded width.

    Bins are half-open ``[lower, upper)``; anything at or beyond the last
    upper edge is clamped into the last bin so counts total ``len(values)``.
    """
    if isinstance(values, Mapping):
        labelled = [(str(label), float(value)) for label, value in values.items()]
    else:
        labelled = [(str(index), float(value)) for index, value in enumerate(values)]
    labelled = [(label, value) for label, value in labelled if math.isfinite(value)]
    if not labelled or bin_count < 1:
        return []

    numbers = [value for _, value in labelled]
    minimum, maximum = min(numbers), max(numbers)
    width = round_bin_width((maximum - minimum) / bin_count or 1.0)
    origin = float(math.floor(minimum))

    bins = [
        HistogramBin(lower=origin + index * width, upper=origin + (index + 1) * width)
        for index in range(bin_count)
    ]
    for label, value in labelled:
        target = bins[-1]
        for candidate in bins:
            if candidate.lower <= value < candidate.upper:
                target = candidate
                break
        target.count += 1
        target.members.append((label, value))
    return bins


def median(values: Iterable[float]) -> float:
    ordered = sorted(float(value) for value in values)
    if not ordered:
        return 0.0
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[middle]
    return (ordered[middle - 1] + ordered[middle]) / 2.0


def quantile_summary(values: Iterable[float]) -> dict[str, float]:
    """Five-number summary (linear interpolation) used for box plots."""
    array = np.asarray([float(value) for value in values], dtype=float)
    array = array[np.isfinite(array)]
    if array.size == 0:
        return {"min": 0.0, "q1": 0.0, "median": 0.0, "q3": 0.0, "max": 0.0}
    q1, q3 = np.percentile(array, [25, 75])
    return {
        "min": float(array.min()),
        "q1": float(q1),
        "median": median(array.tolist()),
        "q3": float(q3),
        "max": float(array.max()),
    }


def summary_table(summaries: Iterable["StateSummary"]) -> list[dict[str, Any]]:
    """Highest / Median / Lowest states by cases."""
    ranked = rank_summaries(summaries, SortMode.cases_desc)
    if not ranked:
        return []
    median_cases = median(item.cases for item in ranked)
    picks = (
        ("Highest", ranked[0]),
        ("Median", ranked[len(ranked) // 2]),
        ("Lowest", ranked[-1]),
    )
    return [
        {
            "rank": rank,
            "state": item.state,
            "cases": item.cases,
            "population": item.population,
            "density": item.density,
            "per100k": item.per100k,
            "median_cases": median_cases,
        }
        for rank, item in picks
    ]


def example_selection(frame: pd.DataFrame) -> dict[str, str]:
    """A (state, disease, year) combination known to exist in ``frame``."""
    diseases = unique_sorted(frame["disease"].tolist()) if not frame.empty else []
    if not diseases:
        return dict(EXAMPLE_FALLBACK)
    disease = str(diseases[0])
    years = unique_sorted(frame.loc[frame["disease"] == disease, "year"].tolist())
    if not years:
        return dict(EXAMPLE_FALLBACK)
    year = str(years[0])
    match = frame[(frame["disease"] == disease) & (frame["year"].astype(str) == year)]
    if match.empty:
        return dict(EXAMPLE_FALLBACK)
    return {"state": str(match["state"].iloc[0]), "disease": disease, "year": year}
