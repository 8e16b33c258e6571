"""Tests for model/diagnostics.py."""

import pandas as pd
import pytest

from psyinterpret.model.analysis_data import build_analysis_data
from psyinterpret.model.diagnostics import (
    find_cross_loadings,
    find_no_loadings,
    format_loading,
)


@pytest.fixture
def mixed_df():
    return pd.DataFrame(
        {"MR1": [0.52, 0.80, 0.10, -0.20], "MR2": [-0.41, 0.10, 0.05, 0.20]},
        index=["a", "b", "c", "d"],
    )


@pytest.mark.parametrize("value, expected", [
    (0.52, ".520"),
    (-0.41, "-.410"),
    (1.0, "1.000"),
    (0.0, ".000"),
])
def test_format_loading(value, expected):
    assert format_loading(value) == expected


def test_cross_loadings(mixed_df):
    cross = find_cross_loadings(mixed_df, cutoff=0.3)
    assert list(cross.columns) == ["variable", "factors"]
    assert cross["variable"].tolist() == ["a"]
    assert cross.iloc[0]["factors"] == "MR1 (.520), MR2 (-.410)"


def test_cross_loadings_respects_cutoff(mixed_df):
    assert find_cross_loadings(mixed_df, cutoff=0.45).empty


def test_no_loadings(mixed_df):
    weak = find_no_loadings(mixed_df, cutoff=0.3)
    assert list(weak.columns) == ["variable", "highest_loading"]
    assert weak["variable"].tolist() == ["c", "d"]
    assert weak.iloc[0]["highest_loading"] == "MR1 = .100"
    # Ties go to the first factor; magnitudes are absolute
    assert weak.iloc[1]["highest_loading"] == "MR1 = .200"


def test_tidy_variable_column():
    tidy = pd.DataFrame({"variable": ["x", "y"], "F1": [0.5, 0.1], "F2": [0.6, 0.0]})
    assert find_cross_loadings(tidy)["variable"].tolist() == ["x"]
    assert find_no_loadings(tidy)["variable"].tolist() == ["y"]


def test_explicit_factor_cols(mixed_df):
    assert find_cross_loadings(mixed_df, factor_cols=["MR1"]).empty
    assert find_no_loadings(mixed_df, factor_cols=["MR2"])["variable"].tolist() == ["b", "c", "d"]


def test_no_factor_columns():
    only_ids = pd.DataFrame({"variable": ["x"]})
    assert find_cross_loadings(only_ids).empty
    assert list(find_no_loadings(only_ids).columns) == ["variable", "highest_loading"]


def test_analysis_data_carries_diagnostics(analysis_data, emergency_data):
    assert analysis_data.cross_loadings.empty
    assert analysis_data.no_loadings.empty
    assert emergency_data.no_loadings["variable"].tolist() == ["talk", "outgoing", "quiet"]
    assert emergency_data.no_loadings.iloc[0]["highest_loading"] == "MR1 = .250"


def test_diagnostics_follow_configured_cutoff(mixed_df):
    data = build_analysis_data(mixed_df, analysis_type="pca", cutoff=0.45)
    assert data.cross_loadings.empty
    assert data.no_loadings["variable"].tolist() == ["c", "d"]
    loose = build_analysis_data(mixed_df, analysis_type="pca", cutoff=0.1)
    assert loose.cross_loadings["variable"].tolist() == ["a", "b", "d"]
