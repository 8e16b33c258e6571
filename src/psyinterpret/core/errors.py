"""Error taxonomy for the interpretation pipeline.

Every fatal condition raises a subclass of :class:`InterpretationError`
carrying an :class:`ErrorKind`.  Callers branch on ``err.kind`` rather than
matching message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Discriminates the failure modes of the pipeline."""
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_CONFIG_VALUE = "invalid_config_value"
    INVALID_PROVIDER = "invalid_provider"
    MALFORMED_RESPONSE = "malformed_response"
    UNSUPPORTED_MODEL_REPRESENTATION = "unsupported_model_representation"


class InterpretationError(ValueError):
    """Base class for all pipeline errors."""
    kind: ErrorKind

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class MissingRequiredField(InterpretationError):
    """A required structural input (``loadings``, ``variable_info``) is absent."""
    kind = ErrorKind.MISSING_REQUIRED_FIELD


class InvalidConfigValue(InterpretationError):
    """A configuration value is outside its valid domain."""
    kind = ErrorKind.INVALID_CONFIG_VALUE


class InvalidProvider(InterpretationError):
    """A session was created with an unsupported provider identifier."""
    kind = ErrorKind.INVALID_PROVIDER


class MalformedResponse(InterpretationError):
    """An LLM reply could not be mapped.  Recovered locally, never surfaced."""
    kind = ErrorKind.MALFORMED_RESPONSE


class UnsupportedModelRepresentation(InterpretationError):
    """No normalizer is registered for the given model shape."""
    kind = ErrorKind.UNSUPPORTED_MODEL_REPRESENTATION
