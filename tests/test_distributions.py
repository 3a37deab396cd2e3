from __future__ import annotations

import pandas as pd
import pytest

from epi_dashboard.features.distributions import (
    GroupingMode,
    distribution_groups,
    distribution_summaries,
)


def test_grouping_mode_columns() -> None:
    assert GroupingMode.by_year.group_column == "year"
    assert GroupingMode.by_year.member_column == "state"
    assert GroupingMode("by_state").group_column == "state"


def test_groups_by_year_fill_absent_pairs_with_zero(observations: pd.DataFrame) -> None:
    groups = distribution_groups(observations, GroupingMode.by_year, disease="Flu")
    assert groups == {"2019": [100.0, 0.0, 50.0], "2020": [300.0, 10.0, 20.0]}


def test_groups_by_state(observations: pd.DataFrame) -> None:
    groups = distribution_groups(observations, "by_state", disease="Flu")
    assert groups == {
        "California": [100.0, 300.0],
        "Ohio": [0.0, 10.0],
        "Texas": [50.0, 20.0],
    }


def test_per100k_normalization_guards_unknown_population(observations: pd.DataFrame) -> None:
    groups = distribution_groups(observations, "by_year", normalize="per100k", disease="Flu")
    assert groups["2020"] == pytest.approx([30000.0, 1000000.0, 1000.0])


def test_all_diseases_are_summed_per_cell(observations: pd.DataFrame) -> None:
    groups = distribution_groups(observations, "by_year")
    assert groups["2020"] == [305.0, 10.0, 20.0]
    assert groups["2021"] == [0.0, 0.0, 7.0]


def test_distribution_groups_misuse(observations: pd.DataFrame) -> None:
    with pytest.raises(TypeError):
        distribution_groups(observations, mode=5)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        distribution_groups(observations, mode="by_week")
    with pytest.raises(ValueError):
        distribution_groups(observations, normalize="percent")  # type: ignore[arg-type]
    assert distribution_groups(observations, disease="Polio") == {}


def test_distribution_summaries() -> None:
    summaries = distribution_summaries({"2020": [1.0, 2.0, 3.0]})
    assert summaries["2020"]["median"] == 2.0
    assert summaries["2020"]["max"] == 3.0
