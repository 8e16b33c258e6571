"""Interpretation result types shared by every parsing tier."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

import pandas as pd

from psyinterpret.core.types import AnalysisType
from psyinterpret.model.analysis_data import AnalysisData, RetainedVariable

TIER_VALIDATED = "validated"
TIER_PATTERN = "pattern"
TIER_DEFAULT = "default"


@dataclass(frozen=True)
class ComponentSummary:
    """The interpretation of one factor alongside its defining variables."""
    llm_interpretation: str
    variables: tuple[RetainedVariable, ...] = ()
    used_emergency_rule: bool = False
    variance_explained: float = 0.0


@dataclass(frozen=True)
class InterpretationResult:
    """One name and one interpretation per factor, plus pass-through context."""
    analysis_type: AnalysisType
    component_summaries: Mapping[str, ComponentSummary]
    suggested_names: Mapping[str, str]
    analysis_data: AnalysisData
    tier: str
    token_usage: Any = None
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def factor_cor_mat(self) -> pd.DataFrame | None:
        """Factor correlations, present only for oblique models."""
        return self.analysis_data.factor_cor

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def interpretation(self, factor_id: str) -> str:
        return self.component_summaries[factor_id].llm_interpretation


def make_result(
    analysis_data: AnalysisData,
    names: Mapping[str, str],
    interpretations: Mapping[str, str],
    tier: str,
) -> InterpretationResult:
    """Assemble a result, ordered by ``analysis_data.factor_cols``."""
    summaries = {}
    for fid in analysis_data.factor_cols:
        fs = analysis_data.factor_summaries[fid]
        summaries[fid] = ComponentSummary(
            llm_interpretation=interpretations[fid],
            variables=fs.variables,
            used_emergency_rule=fs.used_emergency_rule,
            variance_explained=fs.variance_explained,
        )
    return InterpretationResult(
        analysis_type=analysis_data.analysis_type,
        component_summaries=MappingProxyType(summaries),
        suggested_names=MappingProxyType({fid: names[fid] for fid in analysis_data.factor_cols}),
        analysis_data=analysis_data,
        tier=tier,
    )
