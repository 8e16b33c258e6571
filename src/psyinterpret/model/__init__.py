"""Model normalization -- fitted objects, matrices and mappings to AnalysisData."""

from psyinterpret.model.analysis_data import (
    AnalysisData,
    FactorSummary,
    RetainedVariable,
    build_analysis_data,
)
from psyinterpret.model.diagnostics import find_cross_loadings, find_no_loadings

__all__ = [
    "AnalysisData",
    "FactorSummary",
    "RetainedVariable",
    "build_analysis_data",
    "find_cross_loadings",
    "find_no_loadings",
]
