"""Secondary tier: pull per-factor fragments out of malformed reply text.

When the reply as a whole is not valid JSON, each factor id is searched for
individually, e.g. ``"MR1": {"name": "...", "interpretation": "..."}``.
Syntax errors elsewhere in the text do not prevent a fragment from being
read, and a fragment that is itself broken is read field by field.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from psyinterpret.ai._labels import (
    UNDEFINED_NAME,
    add_emergency_suffix,
    clean_text,
    default_label,
)
from psyinterpret.ai.result import TIER_PATTERN, InterpretationResult, make_result
from psyinterpret.model.analysis_data import UNDEFINED_INTERPRETATION, AnalysisData

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found in response"
UNPARSEABLE_INTERPRETATION = "Unable to parse interpretation"
UNEXTRACTABLE = "Unable to extract from response"

_FIELDS = ("name", "interpretation")
_FIELD_KEY = re.compile(r'["\'](?:name|interpretation)["\']\s*:')
_TRAILING_COMMA = re.compile(r",\s*}")


def _fragment_pattern(factor_id: str) -> re.Pattern[str]:
    key = re.escape(factor_id)
    return re.compile(r'(["\'])' + key + r'\1\s*:\s*(\{[^{}]*\})', re.DOTALL)


def locate_fragment(response: str, factor_id: str) -> str | None:
    """Return the first ``{...}`` object keyed by *factor_id* with a name or interpretation field."""
    for match in _fragment_pattern(factor_id).finditer(response):
        body = match.group(2)
        if _FIELD_KEY.search(body):
            return body
    return None


def _field_value(fragment: str, field: str) -> tuple[bool, str | None]:
    """Read one field from a broken fragment: ``(found, value)``."""
    string_match = re.search(
        r'["\']' + field + r'["\']\s*:\s*"((?:[^"\\]|\\.)*)"', fragment, re.DOTALL,
    )
    if string_match:
        raw = string_match.group(1)
        try:
            return True, json.loads(f'"{raw}"')
        except json.JSONDecodeError:
            return True, raw
    if re.search(r'["\']' + field + r'["\']\s*:\s*null\b', fragment):
        return True, None
    return False, None


def decode_fragment(fragment: str) -> dict[str, Any] | None:
    """Decode a located fragment, or ``None`` if no field can be read."""
    for candidate in (fragment, _TRAILING_COMMA.sub("}", fragment)):
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded

    decoded = {}
    for field in _FIELDS:
        found, value = _field_value(fragment, field)
        if found:
            decoded[field] = value
    return decoded or None


def extract_by_pattern(response: Any, analysis_data: AnalysisData) -> InterpretationResult | None:
    """Extract names and interpretations from raw text, or ``None`` if no factor is found."""
    if not isinstance(response, str) or not response.strip():
        return None

    names: dict[str, str] = {}
    interpretations: dict[str, str] = {}
    located = False

    for i, fid in enumerate(analysis_data.factor_cols, start=1):
        summary = analysis_data.factor_summaries[fid]
        fragment = locate_fragment(response, fid)
        located = located or fragment is not None

        if summary.is_undefined:
            names[fid] = UNDEFINED_NAME
            interpretations[fid] = UNDEFINED_INTERPRETATION
            continue

        if fragment is None:
            names[fid] = default_label(i)
            interpretations[fid] = NOT_FOUND
            continue

        decoded = decode_fragment(fragment)
        if decoded is None:
            logger.debug("Located %s but could not decode %r", fid, fragment)
            names[fid] = default_label(i)
            interpretations[fid] = UNEXTRACTABLE
            continue

        name = clean_text(decoded.get("name"))
        names[fid] = (
            add_emergency_suffix(name, summary.used_emergency_rule)
            if name is not None
            else default_label(i)
        )
        interpretations[fid] = clean_text(decoded.get("interpretation")) or UNPARSEABLE_INTERPRETATION

    if not located:
        return None
    return make_result(analysis_data, names, interpretations, TIER_PATTERN)
