"""Normalize fitted models, loadings matrices and mappings into AnalysisData.

Whatever the input shape, the result carries one :class:`FactorSummary` per
factor listing the variables that define it:

- variables with ``abs(loading) >= cutoff`` are retained;
- if none clear the cutoff, the top ``n_emergency`` variables by absolute
  loading are retained instead (the *emergency rule*);
- if that still yields nothing (``n_emergency == 0`` or all loadings are
  zero) the factor is *undefined*.

Usage:
    from psyinterpret.model.analysis_data import build_analysis_data
    data = build_analysis_data(loadings_df, variable_info, cutoff=0.4)
    data.factor_summaries["MR1"].variables
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, NamedTuple, Sequence

import numpy as np
import pandas as pd

from psyinterpret.core.config import build_interpretation_args
from psyinterpret.core.errors import MissingRequiredField, UnsupportedModelRepresentation
from psyinterpret.core.types import AnalysisType, ModelKind
from psyinterpret.model.diagnostics import (
    CROSS_LOADING_COLUMNS,
    NO_LOADING_COLUMNS,
    find_cross_loadings,
    find_no_loadings,
)
from psyinterpret.model.fitted import drop_identity, extract_fitted, is_fitted_model

logger = logging.getLogger(__name__)

UNDEFINED_INTERPRETATION = "NA"


class RetainedVariable(NamedTuple):
    """A variable retained for a factor, with its loading on that factor."""
    variable: str
    loading: float


@dataclass(frozen=True)
class FactorSummary:
    """The defining variables of one factor."""
    variables: tuple[RetainedVariable, ...]
    used_emergency_rule: bool
    variance_explained: float = 0.0
    llm_interpretation: str | None = None  # pre-set override, kept by every tier

    @property
    def is_undefined(self) -> bool:
        return not self.variables and not self.used_emergency_rule


@dataclass
class AnalysisData:
    """Canonical model representation consumed by prompt building and parsing."""
    analysis_type: AnalysisType
    factor_cols: tuple[str, ...]
    loadings: pd.DataFrame
    factor_summaries: dict[str, FactorSummary]
    variable_info: dict[str, str] = field(default_factory=dict)
    factor_cor: pd.DataFrame | None = None
    cutoff: float = 0.3
    n_emergency: int = 2
    hide_low_loadings: bool = False
    sort_loadings: bool = True
    cross_loadings: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=CROSS_LOADING_COLUMNS)
    )
    no_loadings: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=NO_LOADING_COLUMNS)
    )

    @property
    def n_factors(self) -> int:
        return len(self.factor_cols)

    @property
    def n_variables(self) -> int:
        return len(self.loadings.index)

    def is_undefined(self, factor_id: str) -> bool:
        return self.factor_summaries[factor_id].is_undefined

    def factor_table(self, factor_id: str) -> pd.DataFrame:
        """Retained variables of one factor as a variable/description/loading table."""
        rows = [
            {
                "variable": rv.variable,
                "description": self.variable_info.get(rv.variable, ""),
                "loading": rv.loading,
            }
            for rv in self.factor_summaries[factor_id].variables
        ]
        return pd.DataFrame(rows, columns=["variable", "description", "loading"])


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------

def model_kind(model: Any) -> ModelKind:
    """Tag *model* with its representation kind."""
    if isinstance(model, Mapping):
        return ModelKind.MAPPING
    if isinstance(model, (pd.DataFrame, np.ndarray)):
        return ModelKind.MATRIX
    if is_fitted_model(model):
        return ModelKind.FITTED
    raise UnsupportedModelRepresentation(
        f"Cannot interpret a {type(model).__name__}. Pass a fitted model, "
        "a loadings matrix, or a mapping with a 'loadings' entry."
    )


def normalize_variable_info(variable_info: Any) -> dict[str, str] | None:
    """Convert a mapping or a variable/description DataFrame to ``{id: text}``."""
    if variable_info is None:
        return None
    if isinstance(variable_info, pd.DataFrame):
        missing = [c for c in ("variable", "description") if c not in variable_info.columns]
        if missing:
            raise MissingRequiredField(
                f"variable_info must contain 'variable' and 'description' columns (missing {missing})",
                field="variable_info",
            )
        return {
            str(v): "" if pd.isna(d) else str(d)
            for v, d in zip(variable_info["variable"], variable_info["description"])
        }
    if isinstance(variable_info, Mapping):
        return {str(k): "" if v is None else str(v) for k, v in variable_info.items()}
    raise MissingRequiredField(
        "variable_info must be a mapping or a DataFrame with 'variable' and "
        f"'description' columns (got {type(variable_info).__name__})",
        field="variable_info",
    )


def _matrix_to_frame(
    matrix: Any,
    analysis_type: AnalysisType,
    variable_names: Sequence[str] | None = None,
) -> pd.DataFrame:
    if isinstance(matrix, pd.DataFrame):
        frame = matrix.copy()
    elif isinstance(matrix, np.ndarray):
        arr = matrix.reshape(-1, 1) if matrix.ndim == 1 else matrix
        if arr.ndim != 2:
            raise UnsupportedModelRepresentation(
                f"Loadings must be two-dimensional (got {matrix.ndim} dimensions)",
                field="loadings",
            )
        prefix = analysis_type.factor_prefix
        if variable_names is not None and len(variable_names) == arr.shape[0]:
            index = [str(v) for v in variable_names]
        else:
            index = [f"V{i + 1}" for i in range(arr.shape[0])]
        frame = pd.DataFrame(
            arr,
            index=index,
            columns=[f"{prefix}{j + 1}" for j in range(arr.shape[1])],
        )
    elif isinstance(matrix, Mapping):
        frame = pd.DataFrame(matrix)
    else:
        raise UnsupportedModelRepresentation(
            f"loadings must be a DataFrame, array or mapping (got {type(matrix).__name__})",
            field="loadings",
        )

    # A 'variable' column names the rows, as in tidy loadings tables.
    if "variable" in frame.columns:
        frame = frame.set_index("variable")
    frame.index = [str(i) for i in frame.index]
    frame.columns = [str(c) for c in frame.columns]
    return frame


def _from_fitted(model: Any, analysis_type: AnalysisType, variable_names: Sequence[str] | None):
    return extract_fitted(model, analysis_type, variable_names)


def _from_matrix(model: Any, analysis_type: AnalysisType, variable_names: Sequence[str] | None):
    return _matrix_to_frame(model, analysis_type, variable_names), None


def _from_mapping(model: Mapping, analysis_type: AnalysisType, variable_names: Sequence[str] | None):
    if model.get("loadings") is None:
        raise MissingRequiredField(
            f"Mapping input must contain a 'loadings' entry (found {sorted(map(str, model))})",
            field="loadings",
        )
    factor_cor = model.get("factor_cor")
    if factor_cor is None:
        factor_cor = model.get("factor_cor_mat")
    return _matrix_to_frame(model["loadings"], analysis_type, variable_names), factor_cor


_Extractor = Callable[..., tuple]

_DISPATCH: dict[tuple[ModelKind, AnalysisType], _Extractor] = {
    (ModelKind.FITTED, AnalysisType.FA): _from_fitted,
    (ModelKind.FITTED, AnalysisType.PCA): _from_fitted,
    (ModelKind.FITTED, AnalysisType.IRT): _from_fitted,
    (ModelKind.MATRIX, AnalysisType.FA): _from_matrix,
    (ModelKind.MATRIX, AnalysisType.PCA): _from_matrix,
    (ModelKind.MATRIX, AnalysisType.IRT): _from_matrix,
    (ModelKind.MAPPING, AnalysisType.FA): _from_mapping,
    (ModelKind.MAPPING, AnalysisType.PCA): _from_mapping,
    (ModelKind.MAPPING, AnalysisType.IRT): _from_mapping,
}


def _validate_loadings(loadings: pd.DataFrame) -> pd.DataFrame:
    if loadings.shape[0] == 0 or loadings.shape[1] == 0:
        raise UnsupportedModelRepresentation(
            f"Loadings must have at least one variable and one factor (got shape {loadings.shape})",
            field="loadings",
        )
    non_numeric = [c for c in loadings.columns if not pd.api.types.is_numeric_dtype(loadings[c])]
    if non_numeric:
        raise UnsupportedModelRepresentation(
            f"Loadings must be numeric; non-numeric factor columns: {non_numeric}",
            field="loadings",
        )
    if loadings.index.duplicated().any() or loadings.columns.duplicated().any():
        raise UnsupportedModelRepresentation(
            "Variable and factor ids in the loadings must be unique", field="loadings",
        )
    if loadings.isna().to_numpy().any():
        raise UnsupportedModelRepresentation("Loadings contain missing values", field="loadings")
    return loadings.astype(float)


def _align_factor_cor(factor_cor: Any, factor_cols: Sequence[str]) -> pd.DataFrame | None:
    """Index a factor correlation matrix by *factor_cols*."""
    if isinstance(factor_cor, pd.DataFrame):
        labels = [str(c) for c in factor_cor.columns]
        if sorted(labels) != sorted(factor_cols):
            raise UnsupportedModelRepresentation(
                f"Factor correlation labels {labels} do not match factors {list(factor_cols)}",
                field="factor_cor",
            )
        frame = factor_cor.copy()
        frame.columns = labels
        index = [str(i) for i in frame.index]
        if sorted(index) == sorted(labels):
            frame.index = index
        elif len(index) == len(labels):
            # Unlabelled rows follow the column order.
            frame.index = labels
        else:
            raise UnsupportedModelRepresentation(
                f"Factor correlation matrix must be square (got shape {frame.shape})",
                field="factor_cor",
            )
        factor_cor = frame.loc[list(factor_cols), list(factor_cols)].to_numpy()

    mat = drop_identity(factor_cor)
    if mat is None:
        return None
    if mat.shape[0] != len(factor_cols):
        raise UnsupportedModelRepresentation(
            f"Factor correlation matrix is {mat.shape[0]}x{mat.shape[1]} "
            f"but there are {len(factor_cols)} factors",
            field="factor_cor",
        )
    return pd.DataFrame(mat, index=list(factor_cols), columns=list(factor_cols))


# ---------------------------------------------------------------------------
# Per-factor retained-variable rule
# ---------------------------------------------------------------------------

def summarize_factor(
    column: pd.Series,
    cutoff: float,
    n_emergency: int,
    sort_loadings: bool = True,
) -> FactorSummary:
    """Apply the cutoff and emergency rule to one factor's loadings."""
    values = column.to_numpy(dtype=float)
    magnitudes = np.abs(values)
    positions = np.flatnonzero(magnitudes >= cutoff)
    used_emergency_rule = False

    if positions.size == 0 and n_emergency > 0:
        ranked = np.argsort(-magnitudes, kind="stable")
        top = [p for p in ranked[:n_emergency] if magnitudes[p] > 0]
        positions = np.array(sorted(top), dtype=int)
        used_emergency_rule = positions.size > 0

    if positions.size == 0:
        return FactorSummary(
            variables=(),
            used_emergency_rule=False,
            variance_explained=0.0,
            llm_interpretation=UNDEFINED_INTERPRETATION,
        )

    if sort_loadings:
        positions = positions[np.argsort(-magnitudes[positions], kind="stable")]

    variables = tuple(
        RetainedVariable(str(column.index[p]), float(values[p])) for p in positions
    )
    return FactorSummary(
        variables=variables,
        used_emergency_rule=used_emergency_rule,
        variance_explained=float((values ** 2).sum() / len(values)),
    )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def build_analysis_data(
    model: Any,
    variable_info: Any = None,
    interpretation_args: Any = None,
    **direct: Any,
) -> AnalysisData:
    """Build :class:`AnalysisData` from any supported model representation.

    *model* may be a fitted model object, a loadings matrix (DataFrame or
    array) or a mapping with a ``loadings`` entry and optional
    ``factor_cor``.  Options (``analysis_type``, ``cutoff``,
    ``n_emergency``, ``hide_low_loadings``, ``sort_loadings``) come from
    *interpretation_args* and/or direct keyword arguments.
    """
    args = build_interpretation_args(interpretation_args, **direct)
    analysis_type = args.analysis_type

    kind = model_kind(model)
    extractor = _DISPATCH.get((kind, analysis_type))
    if extractor is None:
        raise UnsupportedModelRepresentation(
            f"No normalizer for {kind.value} input with analysis_type {analysis_type.value!r}"
        )

    info = normalize_variable_info(variable_info)
    if analysis_type.requires_variable_info and info is None:
        raise MissingRequiredField(
            f"variable_info is required for {analysis_type.display_name}. "
            "Provide a mapping of variable id to description.",
            field="variable_info",
        )

    raw_loadings, raw_cor = extractor(model, analysis_type, list(info) if info else None)
    loadings = _validate_loadings(raw_loadings)
    factor_cols = tuple(loadings.columns)

    info = dict(info or {})
    missing = [v for v in loadings.index if v not in info]
    if missing and analysis_type.requires_variable_info:
        raise MissingRequiredField(
            f"Variables in loadings not found in variable_info: {missing}",
            field="variable_info",
        )
    extra = [v for v in info if v not in loadings.index]
    if extra:
        logger.debug("Ignoring variable_info entries not in loadings: %s", extra)
    variable_info = {v: info.get(v, "") for v in loadings.index}

    summaries = {
        fid: summarize_factor(loadings[fid], args.cutoff, args.n_emergency, args.sort_loadings)
        for fid in factor_cols
    }
    for fid, summary in summaries.items():
        if summary.used_emergency_rule:
            logger.info(
                "No loadings >= %.2f on %s; using top %d by magnitude",
                args.cutoff, fid, len(summary.variables),
            )
        elif summary.is_undefined:
            logger.info("Factor %s has no retained variables and is undefined", fid)

    return AnalysisData(
        analysis_type=analysis_type,
        factor_cols=factor_cols,
        loadings=loadings,
        factor_summaries=summaries,
        variable_info=variable_info,
        factor_cor=_align_factor_cor(raw_cor, factor_cols),
        cutoff=args.cutoff,
        n_emergency=args.n_emergency,
        hide_low_loadings=args.hide_low_loadings,
        sort_loadings=args.sort_loadings,
        cross_loadings=find_cross_loadings(loadings, args.cutoff),
        no_loadings=find_no_loadings(loadings, args.cutoff),
    )
