"""Analysis-type and model-representation tags used for dispatch."""

from __future__ import annotations

from enum import Enum

from psyinterpret.core.errors import InvalidConfigValue


class AnalysisType(Enum):
    """Modelling families the pipeline can interpret."""
    FA = "fa"
    PCA = "pca"
    IRT = "irt"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def requires_variable_info(self) -> bool:
        """Whether descriptions must be supplied for every variable."""
        return self in (AnalysisType.FA, AnalysisType.IRT)

    @property
    def factor_prefix(self) -> str:
        """Prefix for synthesized factor ids on unlabelled matrices."""
        return "PC" if self is AnalysisType.PCA else "F"


_DISPLAY_NAMES = {
    AnalysisType.FA: "Factor Analysis",
    AnalysisType.PCA: "Principal Component Analysis",
    AnalysisType.IRT: "Item Response Theory",
}


class ModelKind(Enum):
    """Shape of the model representation handed to the builder."""
    FITTED = "fitted"
    MATRIX = "matrix"
    MAPPING = "mapping"


def coerce_analysis_type(value: AnalysisType | str) -> AnalysisType:
    """Return *value* as an :class:`AnalysisType`, accepting its string code."""
    if isinstance(value, AnalysisType):
        return value
    if isinstance(value, str):
        try:
            return AnalysisType(value.strip().lower())
        except ValueError:
            pass
    valid = ", ".join(repr(t.value) for t in AnalysisType)
    raise InvalidConfigValue(
        f"Unknown analysis_type {value!r}. Use one of: {valid}.",
        field="analysis_type",
    )
