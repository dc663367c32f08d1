"""Grouped two-sample t-tests, including the resilient variants.

The resilient variants drop grouping keys whose treatment cells are too
small before testing, so that a single under-populated cell does not
derail the whole grouped run:

- ``t_test_resilient``: every treatment level must have more than 2 rows
  in a grouping key for that key to be kept.
- ``t_test_resilient2``: a grouping key is kept when exactly two of its
  treatment levels have at least 2 rows.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from groupstats.data.validation import validate_columns
from groupstats.errors import FormulaError
from groupstats.stats.preprocess import (
    count_cells,
    iter_groups,
    key_columns,
    semi_join,
    treatment_levels,
)
from groupstats.stats.significance import adjust_pvalues, signif_code

logger = logging.getLogger(__name__)

TTEST_COLUMNS = [
    "response",
    "group1",
    "group2",
    "n1",
    "n2",
    "statistic",
    "df",
    "p",
    "p_adj",
    "p_adj_signif",
]


def parse_formula(formula: str) -> Tuple[str, str]:
    """Split a ``"response ~ treatment"`` formula into its column names.

    Raises:
        FormulaError: If the text does not have exactly one ``~`` with a
            non-empty name on each side
    """
    if not isinstance(formula, str):
        raise FormulaError(f"Formula must be a string like 'response ~ treatment', got {formula!r}")

    parts = formula.split("~")
    if len(parts) != 2:
        raise FormulaError(f"Formula must have exactly one '~': {formula!r}")

    response, treatment = (p.strip() for p in parts)
    if not response or not treatment:
        raise FormulaError(f"Formula needs a response and a treatment: {formula!r}")

    return response, treatment


def two_sample_ttest(x: np.ndarray, y: np.ndarray, var_equal: bool = False) -> Dict[str, float]:
    """Two-sample t-test between ``x`` and ``y``.

    Args:
        x: First group values
        y: Second group values
        var_equal: Pooled-variance test if True, Welch's test otherwise

    Returns:
        Dictionary with keys: statistic, df, p

    Notes:
        Returns NaN statistics when either side has fewer than 2 values.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) < 2 or len(y) < 2:
        return {"statistic": np.nan, "df": np.nan, "p": np.nan}

    res = sp_stats.ttest_ind(x, y, equal_var=var_equal)
    return {
        "statistic": float(res.statistic) if np.isfinite(res.statistic) else np.nan,
        "df": float(res.df) if np.isfinite(res.df) else np.nan,
        "p": float(res.pvalue) if np.isfinite(res.pvalue) else np.nan,
    }


def t_test(
    df: pd.DataFrame,
    response: str,
    treatment: str,
    groups: Optional[Sequence[str]] = None,
    p_adjust_method: str = "holm",
    var_equal: bool = False,
) -> pd.DataFrame:
    """Pairwise two-sample t-tests between treatment levels, per grouping key.

    Args:
        df: Observation table
        response: Numeric response column
        treatment: Treatment column
        groups: Grouping columns (None/empty = a single group)
        p_adjust_method: Adjustment applied within each grouping key
        var_equal: Pooled-variance test if True, Welch's test otherwise

    Returns:
        DataFrame with the grouping columns followed by ``TTEST_COLUMNS``,
        one row per pair of treatment levels per grouping key
    """
    groups = list(groups or [])
    validate_columns(df, response=response, treatment=treatment, groups=groups)

    rows: List[Dict[str, Any]] = []
    for key, part in iter_groups(df, groups):
        levels = treatment_levels(part[treatment])
        group_rows = []

        for g1, g2 in itertools.combinations(levels, 2):
            x = part.loc[part[treatment] == g1, response].dropna().to_numpy(dtype=float)
            y = part.loc[part[treatment] == g2, response].dropna().to_numpy(dtype=float)
            group_rows.append(
                {
                    **key,
                    "response": response,
                    "group1": g1,
                    "group2": g2,
                    "n1": len(x),
                    "n2": len(y),
                    **two_sample_ttest(x, y, var_equal=var_equal),
                }
            )

        if group_rows:
            p_adj = adjust_pvalues(np.array([r["p"] for r in group_rows]), p_adjust_method)
            for row, p in zip(group_rows, p_adj):
                row["p_adj"] = float(p)
                row["p_adj_signif"] = signif_code(p)
        rows.extend(group_rows)

    return pd.DataFrame(rows, columns=groups + TTEST_COLUMNS)


def t_test_resilient(
    df: pd.DataFrame, formula: str, groups: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """Grouped t-test keeping only keys where every treatment level has more than 2 rows.

    Cells (grouping key, treatment level) with 2 or fewer rows are discarded.
    Counts are then spread to one column per treatment level; a grouping key
    with a missing count for any level is dropped. Surviving keys are joined
    back to the original rows and tested with ``t_test``.

    Args:
        df: Observation table
        formula: ``"response ~ treatment"``
        groups: Grouping columns

    Returns:
        ``t_test`` output for the surviving keys (empty when none survive)
    """
    response, treatment = parse_formula(formula)
    groups = list(groups or [])
    validate_columns(df, response=response, treatment=treatment, groups=groups)

    counts = count_cells(df, groups, treatment)
    counts = counts[counts["n"] > 2]

    counts, keys = key_columns(counts, groups)
    if counts.empty:
        surviving = pd.DataFrame(columns=keys)
    else:
        wide = counts.pivot(index=keys, columns=treatment, values="n").dropna()
        surviving = wide.reset_index()[keys]

    logger.info(f"t_test_resilient: {len(surviving)} grouping key(s) kept")

    kept = semi_join(df, surviving, groups)
    return t_test(kept, response, treatment, groups)


def t_test_resilient2(
    df: pd.DataFrame, formula: str, groups: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """Grouped t-test keeping only keys with exactly two well-populated treatment levels.

    Cells with at least 2 rows are kept; a grouping key survives when exactly
    two distinct treatment levels remain. The original rows of surviving
    keys (all levels) are tested with ``t_test``.

    Args:
        df: Observation table
        formula: ``"response ~ treatment"``
        groups: Grouping columns

    Returns:
        ``t_test`` output for the surviving keys (empty when none survive)
    """
    response, treatment = parse_formula(formula)
    groups = list(groups or [])
    validate_columns(df, response=response, treatment=treatment, groups=groups)

    counts = count_cells(df, groups, treatment)
    counts = counts[counts["n"] >= 2]

    counts, keys = key_columns(counts, groups)
    if counts.empty:
        surviving = pd.DataFrame(columns=keys)
    else:
        n_levels = (
            counts.groupby(keys, sort=True, dropna=False, observed=True)[treatment]
            .nunique()
            .reset_index(name="n_levels")
        )
        surviving = n_levels.loc[n_levels["n_levels"] == 2, keys]

    logger.info(f"t_test_resilient2: {len(surviving)} grouping key(s) kept")

    kept = semi_join(df, surviving, groups)
    return t_test(kept, response, treatment, groups)
