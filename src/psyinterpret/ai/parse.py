"""Turn an LLM reply into a complete InterpretationResult.

Tiers, in order:

1. Clean the reply (strip surrounding prose, collapse whitespace, repair
   missing and trailing commas) and parse it as JSON.
2. Parse the raw reply as JSON.
3. Extract per-factor fragments by pattern (:mod:`psyinterpret.ai.pattern`).
4. Synthesize defaults (:mod:`psyinterpret.ai.fallback`).

Tiers 1 and 2 feed :func:`psyinterpret.ai.validate.validate_parsed_result`.
A bad reply never raises: the last tier always succeeds.

Usage:
    from psyinterpret.ai.parse import interpret_response
    result = interpret_response(reply_text, analysis_data, session=session,
                                token_usage=message.usage)
    result.suggested_names["MR1"]
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from typing import Any, Mapping

from psyinterpret.ai.fallback import create_default_result
from psyinterpret.ai.pattern import extract_by_pattern
from psyinterpret.ai.result import InterpretationResult
from psyinterpret.ai.tokens import extract_token_counts
from psyinterpret.ai.validate import validate_parsed_result
from psyinterpret.core.errors import MalformedResponse
from psyinterpret.core.session import ChatSession
from psyinterpret.model.analysis_data import AnalysisData

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")
_MISSING_COMMA = re.compile(r'(\})\s*("[^"]+")\s*:')
_TRAILING_COMMA = re.compile(r",\s*}")


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------

def clean_json_response(response: Any) -> str | None:
    """Strip prose around the outermost ``{...}`` and repair common slips."""
    if not isinstance(response, str) or not response:
        return None
    match = _JSON_BLOCK.search(response)
    if match is None:
        return None
    cleaned = _WHITESPACE.sub(" ", match.group(0))
    cleaned = _MISSING_COMMA.sub(r"\1, \2:", cleaned)
    cleaned = _TRAILING_COMMA.sub("}", cleaned)
    return cleaned.strip()


def load_json(text: str) -> Any:
    """Parse *text* as JSON, raising :class:`MalformedResponse` on failure."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedResponse(f"Reply is not valid JSON: {exc}") from exc


def try_parse_json(text: str | None) -> Any:
    """Parse *text* as JSON, returning ``None`` on failure."""
    if not text:
        return None
    try:
        return load_json(text)
    except MalformedResponse as exc:
        logger.debug("%s", exc)
        return None


# ---------------------------------------------------------------------------
# Tier orchestration
# ---------------------------------------------------------------------------

def parse_llm_response(response: Any, analysis_data: AnalysisData) -> InterpretationResult:
    """Run the tiers until one produces a result.

    *response* may be raw text, an already-parsed mapping, or ``None`` when
    the LLM call failed outright.
    """
    if response is None:
        logger.warning("LLM returned no response; using default interpretations")
        return create_default_result(analysis_data)

    if isinstance(response, Mapping):
        validated = validate_parsed_result(response, analysis_data)
        if validated is not None:
            return validated
        logger.warning("Structured reply matched no factor ids; using default interpretations")
        return create_default_result(analysis_data)

    if not isinstance(response, str):
        logger.warning(
            "Unsupported reply type %s; using default interpretations", type(response).__name__,
        )
        return create_default_result(analysis_data)

    for candidate in (clean_json_response(response), response):
        parsed = try_parse_json(candidate)
        if isinstance(parsed, Mapping):
            validated = validate_parsed_result(parsed, analysis_data)
            if validated is not None:
                return validated

    logger.info("Standard JSON parsing failed, attempting pattern-based extraction")
    extracted = extract_by_pattern(response, analysis_data)
    if extracted is not None:
        return extracted

    logger.warning(
        "All JSON parsing methods failed; using default interpretations. "
        "Consider a larger model for better JSON generation."
    )
    return create_default_result(analysis_data)


def interpret_response(
    response: Any,
    analysis_data: AnalysisData,
    session: ChatSession | None = None,
    token_usage: Any = None,
) -> InterpretationResult:
    """Parse *response* and record the call on *session*.

    *token_usage* is passed through unchanged on the result; its input and
    output counts are normalized with
    :func:`psyinterpret.ai.tokens.extract_token_counts`.
    """
    result = parse_llm_response(response, analysis_data)
    input_tokens, output_tokens = extract_token_counts(token_usage)
    if session is not None:
        session.record(input_tokens, output_tokens)
    return replace(
        result,
        token_usage=token_usage,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )
