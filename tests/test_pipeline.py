"""End-to-end: fitted model -> AnalysisData -> reply parsing -> session totals."""

import json
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from sklearn.decomposition import FactorAnalysis

from psyinterpret import (
    ChatSession,
    build_analysis_data,
    interpret_response,
    load_config,
)


@pytest.fixture
def survey():
    np.random.seed(7)
    n = 300
    social = np.random.randn(n)
    anxious = np.random.randn(n)
    return pd.DataFrame({
        "talk": social + np.random.randn(n) * 0.4,
        "outgoing": social * 0.9 + np.random.randn(n) * 0.4,
        "worry": anxious + np.random.randn(n) * 0.4,
        "nervous": anxious * 0.9 + np.random.randn(n) * 0.4,
    })


@pytest.fixture
def survey_info():
    return {
        "talk": "Talks a lot at parties",
        "outgoing": "Is outgoing, sociable",
        "worry": "Worries a lot",
        "nervous": "Gets nervous easily",
    }


def fake_llm(data):
    """Reply the way a chat model typically does: JSON wrapped in prose."""
    body = {
        fid: {"name": f"Theme {i}", "interpretation": f"Items {', '.join(v for v, _ in s.variables)}."}
        for i, (fid, s) in enumerate(data.factor_summaries.items(), start=1)
    }
    return "Here is the interpretation you asked for:\n```json\n" + json.dumps(body, indent=2) + "\n```"


def test_full_pipeline(survey, survey_info):
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write("interpretation:\n  cutoff: 0.4\n  n_emergency: 1\nllm:\n  llm_provider: anthropic\n")
        path = f.name
    try:
        cfg = load_config(path)
    finally:
        Path(path).unlink()

    model = FactorAnalysis(n_components=2, rotation="varimax", random_state=0).fit(survey)
    data = build_analysis_data(model, survey_info, interpretation_args=cfg.interpretation)
    assert data.cutoff == 0.4
    assert data.factor_cols == ("F1", "F2")

    session = ChatSession.create(cfg.llm.llm_provider, "test-model")
    for _ in range(2):
        result = interpret_response(
            fake_llm(data), data, session=session,
            token_usage={"input_tokens": 500, "output_tokens": 80},
        )
        assert result.tier == "validated"
        assert dict(result.suggested_names) == {"F1": "Theme 1", "F2": "Theme 2"}

    assert session.n_interpretations == 2
    assert session.cumulative_tokens["total_tokens"] == 1160

    retained = {v for s in data.factor_summaries.values() for v, _ in s.variables}
    assert retained == set(survey_info)


def test_llm_failure_still_complete(survey, survey_info):
    model = FactorAnalysis(n_components=2, random_state=0).fit(survey)
    data = build_analysis_data(model, survey_info)
    session = ChatSession("ollama")
    result = interpret_response(None, data, session=session)
    assert result.tier == "default"
    assert set(result.suggested_names) == {"F1", "F2"}
    assert session.n_interpretations == 1
