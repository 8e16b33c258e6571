"""psyinterpret core module -- errors, type tags, configuration and sessions."""

from psyinterpret.core.config import ResolvedConfig, resolve_config
from psyinterpret.core.errors import ErrorKind, InterpretationError
from psyinterpret.core.session import ChatSession
from psyinterpret.core.types import AnalysisType, ModelKind

__all__ = [
    "AnalysisType",
    "ChatSession",
    "ErrorKind",
    "InterpretationError",
    "ModelKind",
    "ResolvedConfig",
    "resolve_config",
]
