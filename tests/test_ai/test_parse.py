"""Tests for ai/parse.py -- tier orchestration and session accounting."""

import json
import logging

import pytest

from psyinterpret.ai.fallback import LLM_ERROR
from psyinterpret.ai.parse import (
    clean_json_response,
    interpret_response,
    load_json,
    parse_llm_response,
    try_parse_json,
)
from psyinterpret.core.errors import ErrorKind, MalformedResponse
from psyinterpret.core.session import ChatSession

LOGGER = "psyinterpret.ai.parse"


# -- JSON helpers -------------------------------------------------------------

def test_clean_strips_prose():
    text = 'Sure! Here it is:\n```json\n{"MR1": {"name": "A"}}\n```\nLet me know.'
    assert clean_json_response(text) == '{"MR1": {"name": "A"}}'


def test_clean_repairs_missing_comma_between_objects():
    text = '{"MR1": {"name": "A"} "MR2": {"name": "B"}}'
    assert clean_json_response(text) == '{"MR1": {"name": "A"}, "MR2": {"name": "B"}}'


def test_clean_removes_trailing_commas():
    assert json.loads(clean_json_response('{"MR1": {"name": "A",},}')) == {"MR1": {"name": "A"}}


@pytest.mark.parametrize("text", [None, "", "no braces here", 42])
def test_clean_returns_none(text):
    assert clean_json_response(text) is None


def test_load_json_raises_malformed():
    with pytest.raises(MalformedResponse) as exc_info:
        load_json("{not json")
    assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE


def test_try_parse_json():
    assert try_parse_json('{"a": 1}') == {"a": 1}
    assert try_parse_json("{not json") is None
    assert try_parse_json(None) is None


# -- tier selection -----------------------------------------------------------

def test_valid_json_text(analysis_data, full_reply):
    result = parse_llm_response(json.dumps(full_reply), analysis_data)
    assert result.tier == "validated"
    assert result.suggested_names["MR1"] == "Extraversion"


def test_prose_wrapped_json_with_slips(analysis_data):
    text = (
        "Based on the loadings, here is my analysis:\n"
        "```json\n"
        '{"MR1": {"name": "Extraversion", "interpretation": "Sociable",}\n'
        ' "MR2": {"name": "Neuroticism", "interpretation": "Anxious"}}\n'
        "```"
    )
    result = parse_llm_response(text, analysis_data)
    assert result.tier == "validated"
    assert dict(result.suggested_names) == {"MR1": "Extraversion", "MR2": "Neuroticism"}


def test_mapping_reply(emergency_data, full_reply):
    result = parse_llm_response(full_reply, emergency_data)
    assert result.tier == "validated"
    assert result.suggested_names["MR1"] == "Extraversion (n.s.)"


def test_malformed_falls_to_pattern(analysis_data, caplog):
    text = (
        '{"MR1": {"name": "Extraversion", "interpretation": "Sociable"}, '
        '"MR2": {"name": "Neuroticism" "interpretation": "Anxious"}}'
    )
    with caplog.at_level(logging.INFO, logger=LOGGER):
        result = parse_llm_response(text, analysis_data)
    assert result.tier == "pattern"
    assert result.interpretation("MR2") == "Anxious"
    assert "pattern-based extraction" in caplog.text


def test_garbage_falls_to_default(analysis_data, caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER):
        result = parse_llm_response("I cannot interpret these factors.", analysis_data)
    assert result.tier == "default"
    assert result.interpretation("MR1") == LLM_ERROR
    assert "All JSON parsing methods failed" in caplog.text


def test_none_response(analysis_data, caplog):
    with caplog.at_level(logging.WARNING, logger=LOGGER):
        result = parse_llm_response(None, analysis_data)
    assert result.tier == "default"
    assert dict(result.suggested_names) == {"MR1": "Factor 1", "MR2": "Factor 2"}
    assert "no response" in caplog.text


@pytest.mark.parametrize("response", [{}, "{}", {"Factor1": {"name": "X"}}, "[1, 2]", 3.5, b"{}"])
def test_unusable_replies_give_defaults(analysis_data, response):
    result = parse_llm_response(response, analysis_data)
    assert result.tier == "default"
    assert list(result.suggested_names) == ["MR1", "MR2"]


@pytest.mark.parametrize("response", [
    '{"MR1": {"name": "A", "interpretation": "B"}}',
    '"MR1": {"name": "A" "interpretation": "B"}',
    "nothing useful",
    None,
])
def test_every_tier_is_total(undefined_data, response):
    result = parse_llm_response(response, undefined_data)
    assert set(result.suggested_names) == set(undefined_data.factor_cols)
    assert set(result.component_summaries) == set(undefined_data.factor_cols)
    assert result.suggested_names["MR2"] == "undefined"
    assert result.interpretation("MR2") == "NA"


def test_deterministic(analysis_data):
    text = '"MR1": {"name": "Extraversion" "interpretation": "Sociable"}'
    first = parse_llm_response(text, analysis_data)
    second = parse_llm_response(text, analysis_data)
    assert dict(first.suggested_names) == dict(second.suggested_names)
    assert first.interpretation("MR1") == second.interpretation("MR1")


# -- interpret_response -------------------------------------------------------

def test_interpret_response_records_session(analysis_data, full_reply):
    session = ChatSession("anthropic", "claude-test")
    usage = {"input_tokens": 300, "output_tokens": 120}
    result = interpret_response(json.dumps(full_reply), analysis_data, session=session, token_usage=usage)
    assert result.token_usage is usage
    assert result.input_tokens == 300
    assert result.output_tokens == 120
    assert result.total_tokens == 420
    assert session.n_interpretations == 1
    assert session.cumulative_tokens == {"input_tokens": 300, "output_tokens": 120, "total_tokens": 420}

    interpret_response(None, analysis_data, session=session, token_usage={"prompt_tokens": 10, "completion_tokens": 5})
    assert session.n_interpretations == 2
    assert session.cumulative_input_tokens == 310
    assert session.cumulative_output_tokens == 125


def test_interpret_response_without_usage(analysis_data, full_reply):
    session = ChatSession("openai")
    result = interpret_response(full_reply, analysis_data, session=session)
    assert result.token_usage is None
    assert result.total_tokens == 0
    assert session.n_interpretations == 1
    assert session.cumulative_tokens["total_tokens"] == 0


def test_interpret_response_without_session(analysis_data):
    result = interpret_response("garbage", analysis_data, token_usage=[{"role": "user", "tokens": 9}])
    assert result.tier == "default"
    assert result.input_tokens == 9
    assert result.output_tokens == 0
