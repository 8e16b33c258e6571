"""Terminal tier: a complete result synthesized without any LLM content."""

from __future__ import annotations

from psyinterpret.ai._labels import UNDEFINED_NAME, default_label
from psyinterpret.ai.result import TIER_DEFAULT, InterpretationResult, make_result
from psyinterpret.model.analysis_data import AnalysisData

LLM_ERROR = "Unable to generate interpretation due to LLM error"


def create_default_result(analysis_data: AnalysisData) -> InterpretationResult:
    """Default names and interpretations for every factor.  Never fails.

    A pre-set ``llm_interpretation`` on a factor summary (the ``"NA"``
    placeholder of undefined factors) is kept verbatim.
    """
    names: dict[str, str] = {}
    interpretations: dict[str, str] = {}
    for i, fid in enumerate(analysis_data.factor_cols, start=1):
        summary = analysis_data.factor_summaries[fid]
        names[fid] = UNDEFINED_NAME if summary.is_undefined else default_label(i)
        if summary.llm_interpretation is not None:
            interpretations[fid] = summary.llm_interpretation
        else:
            interpretations[fid] = LLM_ERROR
    return make_result(analysis_data, names, interpretations, TIER_DEFAULT)
