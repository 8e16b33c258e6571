"""Normalize provider-shaped token usage into input/output counts.

Accepted shapes:

- ``None`` -- the provider reported nothing
- a mapping or object with ``input_tokens``/``output_tokens`` (Anthropic)
- a mapping or object with ``prompt_tokens``/``completion_tokens`` (OpenAI)
- a sequence of ``{"role": ..., "tokens": ...}`` records, where ``user``
  counts as input and ``assistant`` as output; ``system`` rows are skipped
"""

from __future__ import annotations

from typing import Any, Mapping

from psyinterpret.core.session import normalize_token_count

_KEY_PAIRS = (
    ("input_tokens", "output_tokens"),
    ("prompt_tokens", "completion_tokens"),
)


def _get(usage: Any, key: str) -> Any:
    if isinstance(usage, Mapping):
        return usage.get(key)
    return getattr(usage, key, None)


def extract_token_counts(token_usage: Any) -> tuple[int, int]:
    """Return ``(input_tokens, output_tokens)``; unknown shapes count as zero."""
    if token_usage is None:
        return 0, 0

    if isinstance(token_usage, (list, tuple)):
        input_tokens = output_tokens = 0
        for row in token_usage:
            role = _get(row, "role")
            if role == "user":
                input_tokens += normalize_token_count(_get(row, "tokens"))
            elif role == "assistant":
                output_tokens += normalize_token_count(_get(row, "tokens"))
        return input_tokens, output_tokens

    for in_key, out_key in _KEY_PAIRS:
        in_val, out_val = _get(token_usage, in_key), _get(token_usage, out_key)
        if in_val is not None or out_val is not None:
            return normalize_token_count(in_val), normalize_token_count(out_val)
    return 0, 0
