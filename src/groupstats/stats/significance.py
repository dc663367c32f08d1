"""Significance codes and p-value adjustment."""

from __future__ import annotations

from typing import Optional
import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from groupstats.config import SIGNIF_CUTPOINTS, NOT_SIGNIFICANT, resolve_adjust_method


def signif_code(p: float) -> str:
    """Convert a p-value to its significance code.

    Args:
        p: P-value (may be NaN or None)

    Returns:
        One of "****", "***", "**", "*", "ns". Missing values map to "ns".

    Examples:
        >>> signif_code(0.00009)
        '****'
        >>> signif_code(0.0001)
        '***'
        >>> signif_code(0.05)
        'ns'
    """
    if p is None or pd.isna(p):
        return NOT_SIGNIFICANT
    for cutpoint, code in SIGNIF_CUTPOINTS:
        if p < cutpoint:
            return code
    return NOT_SIGNIFICANT


def add_significance(
    df: pd.DataFrame, p_col: str = "p_adj", output_col: Optional[str] = None
) -> pd.DataFrame:
    """Append a significance-code column derived from ``p_col``.

    Args:
        df: Table holding p-values
        p_col: Column to read
        output_col: Column to write (default: ``f"{p_col}_signif"``)

    Returns:
        Copy of ``df`` with the code column added
    """
    output_col = output_col or f"{p_col}_signif"
    out = df.copy()
    out[output_col] = [signif_code(p) for p in out[p_col]]
    return out


def adjust_pvalues(pvals: np.ndarray, method: str) -> np.ndarray:
    """Adjust p-values with statsmodels multipletests.

    NaN entries are left as NaN and excluded from the family size.

    Args:
        pvals: Raw p-values
        method: Adjustment name (see ``groupstats.config.ADJUST_METHODS``)

    Returns:
        Adjusted p-values, same shape as ``pvals``
    """
    pvals = np.asarray(pvals, dtype=float)
    sm_method = resolve_adjust_method(method)
    if sm_method is None:
        return pvals.copy()

    p_adj = np.full_like(pvals, np.nan, dtype=float)
    mask = np.isfinite(pvals)
    if mask.any():
        _, adj, _, _ = multipletests(pvals[mask], method=sm_method)
        p_adj[mask] = adj
    return p_adj


def adjust_pvalue_column(
    df: pd.DataFrame, method: str, p_col: str = "p", output_col: str = "p_adj"
) -> pd.DataFrame:
    """Adjust a p-value column across every row of a table."""
    out = df.copy()
    if out.empty:
        out[output_col] = pd.Series(dtype=float)
        return out
    out[output_col] = adjust_pvalues(out[p_col].to_numpy(dtype=float), method)
    return out
