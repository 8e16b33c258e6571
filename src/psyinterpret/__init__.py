"""psyinterpret -- LLM-assisted interpretation of latent-factor models.

psyinterpret turns fitted factor-analytic, principal-component and
item-response models into per-factor names and interpretations.  It
normalizes the model into one canonical structure, and converts whatever
the language model replies -- valid JSON, half-broken JSON or nothing at
all -- into exactly one name and one interpretation per factor.

Quick start::

    from psyinterpret import build_analysis_data, interpret_response

    data = build_analysis_data(loadings_df, variable_info, cutoff=0.4)
    # ... build a prompt from ``data`` and query an LLM ...
    result = interpret_response(reply_text, data)
    result.suggested_names      # {"MR1": "Extraversion", ...}
"""

__version__ = "0.3.0"

# Errors and tags
from psyinterpret.core.errors import (
    ErrorKind,
    InterpretationError,
    InvalidConfigValue,
    InvalidProvider,
    MalformedResponse,
    MissingRequiredField,
    UnsupportedModelRepresentation,
)
from psyinterpret.core.types import AnalysisType, ModelKind

# Configuration and session
from psyinterpret.core.config import (
    EMPTY_CONFIG,
    InterpretationArgs,
    LLMArgs,
    OutputArgs,
    ResolvedConfig,
    load_config,
    resolve_config,
)
from psyinterpret.core.session import ChatSession

# Model normalization
from psyinterpret.model.analysis_data import AnalysisData, FactorSummary, build_analysis_data

# Response parsing
from psyinterpret.ai.result import ComponentSummary, InterpretationResult
from psyinterpret.ai.parse import interpret_response, parse_llm_response
