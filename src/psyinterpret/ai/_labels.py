"""Shared label helpers for the response-parsing tiers."""

from __future__ import annotations

from typing import Any

EMERGENCY_SUFFIX = " (n.s.)"
UNDEFINED_NAME = "undefined"

# Placeholder names that never receive the emergency suffix.
_PLACEHOLDER_NAMES = frozenset({"NA", "na", "N/A", "n/a"})


def default_label(position: int) -> str:
    """Label for the factor at 1-based *position* when no name was resolved."""
    return f"Factor {position}"


def clean_text(value: Any) -> str | None:
    """Return *value* as trimmed text, or ``None`` if it is absent, null or blank.

    Numbers are kept as their string form; containers and booleans are not text.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    text = str(value).strip()
    return text or None


def add_emergency_suffix(name: str, used_emergency_rule: bool) -> str:
    """Append `` (n.s.)`` to a resolved name when the emergency rule was used."""
    if not used_emergency_rule or name in _PLACEHOLDER_NAMES:
        return name
    return name + EMERGENCY_SUFFIX
