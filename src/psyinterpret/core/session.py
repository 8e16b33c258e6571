"""Chat session state -- one provider/model binding reused across calls.

A :class:`ChatSession` accumulates token counts and the number of completed
interpretations.  Provider and model are fixed at creation; counters only
change through :meth:`ChatSession.record` and :meth:`ChatSession.reset`.

Sessions carry no locking.  Callers sharing one session across threads must
serialize their interpretation calls.
"""

from __future__ import annotations

import logging
from datetime import datetime

from psyinterpret.core.errors import InvalidConfigValue, InvalidProvider
from psyinterpret.core.types import AnalysisType, coerce_analysis_type

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS: frozenset[str] = frozenset({
    "anthropic",
    "openai",
    "ollama",
    "gemini",
    "azure",
    "bedrock",
    "groq",
    "mistral",
})


def normalize_token_count(value: object) -> int:
    """Coerce a provider-reported token count to a non-negative int.

    ``None``, NaN, non-numeric and negative values all become 0.
    """
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if number != number or number < 0 or number == float("inf"):
        return 0
    return int(number)


class ChatSession:
    """Usage counters bound to one immutable provider/model pair."""

    __slots__ = (
        "_provider", "_model", "_analysis_type", "_created_at",
        "_n_interpretations", "_input_tokens", "_output_tokens",
    )

    def __init__(
        self,
        provider: str,
        model: str | None = None,
        analysis_type: AnalysisType | str = AnalysisType.FA,
    ) -> None:
        if not isinstance(provider, str) or provider.strip().lower() not in SUPPORTED_PROVIDERS:
            raise InvalidProvider(
                f"Unsupported provider {provider!r}. "
                f"Supported: {sorted(SUPPORTED_PROVIDERS)}",
                field="provider",
            )
        if model is not None and not isinstance(model, str):
            raise InvalidConfigValue("model must be a string or None", field="model")
        self._provider = provider.strip().lower()
        self._model = model
        self._analysis_type = coerce_analysis_type(analysis_type)
        self._created_at = datetime.now()
        self._n_interpretations = 0
        self._input_tokens = 0
        self._output_tokens = 0

    @classmethod
    def create(
        cls,
        provider: str,
        model: str | None = None,
        analysis_type: AnalysisType | str = AnalysisType.FA,
    ) -> ChatSession:
        """Create a session, raising :class:`InvalidProvider` for unknown providers."""
        return cls(provider, model, analysis_type)

    # -- write-once binding ------------------------------------------------

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def model(self) -> str | None:
        return self._model

    @property
    def analysis_type(self) -> AnalysisType:
        return self._analysis_type

    @property
    def created_at(self) -> datetime:
        return self._created_at

    def bind_provider(self, requested: str | None) -> str:
        """Return the bound provider; a different *requested* value is ignored."""
        if requested is not None and requested.strip().lower() != self._provider:
            logger.warning(
                "Ignoring provider %r: session is bound to %r", requested, self._provider,
            )
        return self._provider

    # -- counters ----------------------------------------------------------

    @property
    def n_interpretations(self) -> int:
        return self._n_interpretations

    @property
    def cumulative_input_tokens(self) -> int:
        return self._input_tokens

    @property
    def cumulative_output_tokens(self) -> int:
        return self._output_tokens

    @property
    def cumulative_tokens(self) -> dict[str, int]:
        return {
            "input_tokens": self._input_tokens,
            "output_tokens": self._output_tokens,
            "total_tokens": self._input_tokens + self._output_tokens,
        }

    def record(self, input_tokens: object = 0, output_tokens: object = 0) -> None:
        """Add one completed interpretation and its token usage."""
        self._input_tokens += normalize_token_count(input_tokens)
        self._output_tokens += normalize_token_count(output_tokens)
        self._n_interpretations += 1

    def reset(self) -> None:
        """Zero all counters, keeping the provider/model binding."""
        self._n_interpretations = 0
        self._input_tokens = 0
        self._output_tokens = 0

    # -- display -----------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"ChatSession(provider={self._provider!r}, model={self._model!r}, "
            f"n_interpretations={self._n_interpretations})"
        )

    def __str__(self) -> str:
        return "\n".join([
            f"{self._analysis_type.display_name} Chat Session",
            f"Provider: {self._provider}",
            f"Model: {self._model or 'default'}",
            f"Created: {self._created_at.isoformat(timespec='seconds')}",
            f"Interpretations run: {self._n_interpretations}",
            f"Total tokens - Input: {self._input_tokens}, Output: {self._output_tokens}",
        ])
