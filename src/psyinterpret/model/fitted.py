"""Loadings extraction from fitted model objects.

Fitted models are recognized by the accessors they expose rather than by
importing every modelling library:

- ``loadings_`` with optional ``phi_`` -- factor_analyzer ``FactorAnalyzer``
- ``discrimination_`` with optional ``factor_cor_`` -- multidimensional IRT
  models reporting slope parameters
- ``components_`` -- scikit-learn ``FactorAnalysis`` and ``PCA``
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA

from psyinterpret.core.errors import UnsupportedModelRepresentation
from psyinterpret.core.types import AnalysisType

# Logistic-to-normal-ogive scaling constant for IRT slopes.
IRT_SCALING = 1.702

_ACCESSORS = ("loadings_", "discrimination_", "components_")


def is_fitted_model(obj: Any) -> bool:
    """True if *obj* exposes one of the recognized loadings accessors."""
    if isinstance(obj, (pd.DataFrame, np.ndarray, dict)):
        return False
    return any(getattr(obj, attr, None) is not None for attr in _ACCESSORS)


def irt_slopes_to_loadings(slopes: np.ndarray) -> np.ndarray:
    """Convert logistic IRT slopes (items x dimensions) to standardized loadings."""
    scaled = np.asarray(slopes, dtype=float) / IRT_SCALING
    if scaled.ndim == 1:
        scaled = scaled.reshape(-1, 1)
    denom = np.sqrt(1.0 + (scaled ** 2).sum(axis=1, keepdims=True))
    return scaled / denom


def _row_names(model: Any, n_rows: int, candidates: Sequence[str] | None) -> list[str]:
    names = getattr(model, "feature_names_in_", None)
    if names is not None and len(names) == n_rows:
        return [str(n) for n in names]
    if candidates is not None and len(candidates) == n_rows:
        return [str(n) for n in candidates]
    return [f"V{i + 1}" for i in range(n_rows)]


def _raw_loadings(model: Any) -> np.ndarray:
    loadings = getattr(model, "loadings_", None)
    if loadings is not None:
        return np.asarray(loadings, dtype=float)

    slopes = getattr(model, "discrimination_", None)
    if slopes is not None:
        return irt_slopes_to_loadings(slopes)

    components = np.asarray(model.components_, dtype=float).T
    if isinstance(model, PCA):
        # Eigenvectors scaled by component standard deviations
        components = components * np.sqrt(model.explained_variance_)
    return components


def drop_identity(factor_cor: Any) -> np.ndarray | None:
    """Return *factor_cor* as an array, or ``None`` if absent or orthogonal."""
    if factor_cor is None:
        return None
    mat = np.asarray(factor_cor, dtype=float)
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise UnsupportedModelRepresentation(
            f"Factor correlation matrix must be square (got shape {mat.shape})",
            field="factor_cor",
        )
    if np.allclose(mat, np.eye(mat.shape[0])):
        return None
    return mat


def extract_fitted(
    model: Any,
    analysis_type: AnalysisType,
    variable_names: Sequence[str] | None = None,
) -> tuple[pd.DataFrame, np.ndarray | None]:
    """Return ``(loadings, factor_cor)`` for a fitted model object."""
    if not is_fitted_model(model):
        raise UnsupportedModelRepresentation(
            f"{type(model).__name__} exposes none of {list(_ACCESSORS)}",
        )
    raw = _raw_loadings(model)
    if raw.ndim == 1:
        raw = raw.reshape(-1, 1)
    if raw.ndim != 2:
        raise UnsupportedModelRepresentation(
            f"Loadings must be two-dimensional (got {raw.ndim} dimensions)",
            field="loadings",
        )

    prefix = analysis_type.factor_prefix
    loadings = pd.DataFrame(
        raw,
        index=_row_names(model, raw.shape[0], variable_names),
        columns=[f"{prefix}{j + 1}" for j in range(raw.shape[1])],
    )

    factor_cor = getattr(model, "phi_", None)
    if factor_cor is None:
        factor_cor = getattr(model, "factor_cor_", None)
    return loadings, drop_identity(factor_cor)
