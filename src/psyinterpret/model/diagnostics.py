"""Loading-structure diagnostics.

- cross-loadings: variables at or above the cutoff on more than one factor
- no loadings: variables below the cutoff on every factor

Usage:
    from psyinterpret.model.diagnostics import find_cross_loadings
    find_cross_loadings(loadings_df, cutoff=0.4)
"""

from __future__ import annotations

import re
from typing import Sequence

import pandas as pd

CROSS_LOADING_COLUMNS = ["variable", "factors"]
NO_LOADING_COLUMNS = ["variable", "highest_loading"]


def format_loading(value: float, digits: int = 3) -> str:
    """Fixed-precision loading without the leading zero, e.g. ``-.680``."""
    return re.sub(r"^(-?)0\.", r"\1.", f"{value:.{digits}f}")


def _factor_cols(loadings: pd.DataFrame, factor_cols: Sequence[str] | None) -> list[str]:
    if factor_cols is None:
        return [c for c in loadings.columns if c != "variable"]
    return list(factor_cols)


def _variable_ids(loadings: pd.DataFrame) -> list[str]:
    if "variable" in loadings.columns:
        return [str(v) for v in loadings["variable"]]
    return [str(v) for v in loadings.index]


def find_cross_loadings(
    loadings: pd.DataFrame,
    cutoff: float = 0.3,
    factor_cols: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Variables whose absolute loading reaches *cutoff* on two or more factors.

    Returns a frame with ``variable`` and ``factors`` columns, where
    ``factors`` reads like ``"MR1 (.520), MR2 (-.410)"``.
    """
    cols = _factor_cols(loadings, factor_cols)
    rows = []
    if cols:
        for variable, (_, row) in zip(_variable_ids(loadings), loadings.iterrows()):
            high = [
                f"{col} ({format_loading(row[col])})"
                for col in cols
                if abs(row[col]) >= cutoff
            ]
            if len(high) > 1:
                rows.append({"variable": variable, "factors": ", ".join(high)})
    return pd.DataFrame(rows, columns=CROSS_LOADING_COLUMNS)


def find_no_loadings(
    loadings: pd.DataFrame,
    cutoff: float = 0.3,
    factor_cols: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Variables below *cutoff* on every factor, with their strongest loading.

    ``highest_loading`` reads like ``"MR2 = .210"`` (absolute value; the
    first factor wins ties).
    """
    cols = _factor_cols(loadings, factor_cols)
    rows = []
    if cols:
        for variable, (_, row) in zip(_variable_ids(loadings), loadings.iterrows()):
            magnitudes = [abs(row[col]) for col in cols]
            if any(m >= cutoff for m in magnitudes):
                continue
            best = max(range(len(cols)), key=lambda j: (magnitudes[j], -j))
            rows.append({
                "variable": variable,
                "highest_loading": f"{cols[best]} = {format_loading(magnitudes[best])}",
            })
    return pd.DataFrame(rows, columns=NO_LOADING_COLUMNS)
