"""Primary tier: map an already-parsed LLM reply onto the analysis factors.

The reply is a mapping from factor id to an object with optional ``name``
and ``interpretation`` fields, e.g.::

    {"MR1": {"name": "Extraversion", "interpretation": "..."},
     "MR2": {"name": "Neuroticism", "interpretation": "..."}}

:func:`validate_parsed_result` returns ``None`` when the reply holds nothing
usable (empty, all-null, or no key matching a factor id) so the caller can
move on to pattern extraction.
"""

from __future__ import annotations

from typing import Any, Mapping

from psyinterpret.ai._labels import (
    UNDEFINED_NAME,
    add_emergency_suffix,
    clean_text,
    default_label,
)
from psyinterpret.ai.result import TIER_VALIDATED, InterpretationResult, make_result
from psyinterpret.model.analysis_data import UNDEFINED_INTERPRETATION, AnalysisData

MISSING_FROM_RESPONSE = "Missing from LLM response"
NO_INTERPRETATION = "Unable to generate interpretation"


def _has_usable_entries(parsed: Any, factor_cols: tuple[str, ...]) -> bool:
    if not isinstance(parsed, Mapping) or not parsed:
        return False
    if all(v is None for v in parsed.values()):
        return False
    return any(fid in parsed for fid in factor_cols)


def validate_parsed_result(
    parsed: Any,
    analysis_data: AnalysisData,
) -> InterpretationResult | None:
    """Validate a structured reply, or return ``None`` if nothing is usable."""
    factor_cols = analysis_data.factor_cols
    if not _has_usable_entries(parsed, factor_cols):
        return None

    names: dict[str, str] = {}
    interpretations: dict[str, str] = {}

    for i, fid in enumerate(factor_cols, start=1):
        summary = analysis_data.factor_summaries[fid]

        if summary.is_undefined:
            names[fid] = UNDEFINED_NAME
            interpretations[fid] = UNDEFINED_INTERPRETATION
            continue

        entry = parsed.get(fid)
        if entry is None:
            names[fid] = default_label(i)
            interpretations[fid] = MISSING_FROM_RESPONSE
            continue
        if not isinstance(entry, Mapping):
            entry = {}

        name = clean_text(entry.get("name"))
        names[fid] = (
            add_emergency_suffix(name, summary.used_emergency_rule)
            if name is not None
            else default_label(i)
        )
        interpretations[fid] = clean_text(entry.get("interpretation")) or NO_INTERPRETATION

    return make_result(analysis_data, names, interpretations, TIER_VALIDATED)
