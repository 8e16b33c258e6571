"""psyinterpret AI module -- turning LLM replies into interpretations.

Replies pass through up to three converters, each tried only when the one
before it has nothing usable:

1. **validate** -- maps a fully parsed JSON reply onto the factor ids.
2. **pattern** -- pulls per-factor fragments out of malformed text.
3. **fallback** -- synthesizes default names and interpretations.

:func:`interpret_response` runs them in order and always returns one name
and one interpretation per factor.

Usage:
    from psyinterpret.ai import interpret_response
"""

from psyinterpret.ai.fallback import create_default_result
from psyinterpret.ai.parse import interpret_response, parse_llm_response
from psyinterpret.ai.pattern import extract_by_pattern
from psyinterpret.ai.result import ComponentSummary, InterpretationResult
from psyinterpret.ai.tokens import extract_token_counts
from psyinterpret.ai.validate import validate_parsed_result

__all__ = [
    "ComponentSummary",
    "InterpretationResult",
    "create_default_result",
    "extract_by_pattern",
    "extract_token_counts",
    "interpret_response",
    "parse_llm_response",
    "validate_parsed_result",
]
