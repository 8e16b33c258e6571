"""Shared test fixtures for psyinterpret."""

import pandas as pd
import pytest

from psyinterpret.model.analysis_data import build_analysis_data

VARIABLES = ["talk", "outgoing", "quiet", "worry", "nervous", "calm"]


@pytest.fixture
def variable_info():
    """Descriptions for a small two-factor personality inventory."""
    return {
        "talk": "Talks a lot at parties",
        "outgoing": "Is outgoing, sociable",
        "quiet": "Tends to be quiet",
        "worry": "Worries a lot",
        "nervous": "Gets nervous easily",
        "calm": "Is relaxed, handles stress well",
    }


@pytest.fixture
def loadings_df():
    """Clean simple structure: MR1 = extraversion items, MR2 = neuroticism items."""
    return pd.DataFrame(
        {
            "MR1": [0.82, 0.75, -0.68, 0.05, 0.10, -0.02],
            "MR2": [0.03, 0.12, 0.08, 0.79, 0.71, -0.64],
        },
        index=VARIABLES,
    )


@pytest.fixture
def weak_mr1_df(loadings_df):
    """MR1 has no loading at or above 0.3."""
    df = loadings_df.copy()
    df["MR1"] = [0.25, 0.20, -0.28, 0.05, 0.10, 0.01]
    return df


@pytest.fixture
def analysis_data(loadings_df, variable_info):
    return build_analysis_data(loadings_df, variable_info)


@pytest.fixture
def emergency_data(weak_mr1_df, variable_info):
    """MR1 kept by the emergency rule, MR2 defined normally."""
    return build_analysis_data(weak_mr1_df, variable_info, cutoff=0.3, n_emergency=2)


@pytest.fixture
def undefined_data(weak_mr1_df, variable_info):
    """MR1 kept by the emergency rule, MR2 all-zero and therefore undefined."""
    df = weak_mr1_df.copy()
    df["MR2"] = 0.0
    return build_analysis_data(df, variable_info, cutoff=0.3, n_emergency=3)


@pytest.fixture
def full_reply():
    return {
        "MR1": {"name": "Extraversion", "interpretation": "Sociability and talkativeness."},
        "MR2": {"name": "Neuroticism", "interpretation": "Worry and emotional reactivity."},
    }
