"""Grouped one-way ANOVA: one model per grouping key."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
import numpy as np
import pandas as pd
from statsmodels.formula.api import ols
from statsmodels.stats.anova import anova_lm

from groupstats.config import ALPHA
from groupstats.data.validation import validate_columns, validate_response
from groupstats.errors import EmptyResultError
from groupstats.stats.preprocess import iter_groups

logger = logging.getLogger(__name__)

NOTE_INSUFFICIENT_LEVELS = "Not enough treatment levels"

ANOVA_COLUMNS = [
    "term",
    "df",
    "df_residual",
    "sumsq",
    "meansq",
    "statistic",
    "p_value",
    "anova_model",
]


def anova_formula(response: str, treatment: str) -> str:
    """Build the patsy formula for a one-way ANOVA of ``response`` on ``treatment``."""
    return f'Q("{response}") ~ C(Q("{treatment}"))'


def fit_oneway(part: pd.DataFrame, response: str, treatment: str) -> Dict[str, Any]:
    """Fit a one-way ANOVA on one partition.

    Args:
        part: Partition holding the response and treatment columns
        response: Response column name
        treatment: Treatment column name

    Returns:
        Dictionary with keys: term, df, df_residual, sumsq, meansq, statistic,
        p_value, anova_model
    """
    model = ols(anova_formula(response, treatment), data=part).fit()
    table = anova_lm(model, typ=1)
    effect = table.iloc[0]
    residual = table.loc["Residual"]

    return {
        "term": treatment,
        "df": float(effect["df"]),
        "df_residual": float(residual["df"]),
        "sumsq": float(effect["sum_sq"]),
        "meansq": float(effect["mean_sq"]),
        "statistic": float(effect["F"]) if np.isfinite(effect["F"]) else np.nan,
        "p_value": float(effect["PR(>F)"]) if np.isfinite(effect["PR(>F)"]) else np.nan,
        "anova_model": model,
    }


def fit_grouped_anova(
    df: pd.DataFrame,
    response: str,
    treatment: str,
    groups: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Fit one one-way ANOVA per grouping key.

    Args:
        df: Observation table
        response: Numeric response column
        treatment: Treatment column
        groups: Grouping columns (None/empty = a single group)

    Returns:
        DataFrame with one row per grouping key: the grouping columns, then
        ``term, df, df_residual, sumsq, meansq, statistic, p_value,
        anova_model``. Keys with fewer than 2 treatment levels get a
        placeholder row holding only ``note``. If no key could be fit the
        table has no ``p_value`` column.

    Raises:
        ColumnNotFoundError: If any named column is absent
        EmptyResultError: If the table yields no groups at all
    """
    groups = list(groups or [])
    columns = validate_columns(df, response=response, treatment=treatment, groups=groups)
    validate_response(df, response)

    data = df[list(dict.fromkeys(groups + [response, treatment]))]

    rows: List[Dict[str, Any]] = []
    if len(data) > 0:
        for key, part in iter_groups(data, groups):
            n_levels = part[treatment].nunique(dropna=True)
            logger.debug(f"Group {key}: {n_levels} treatment levels")

            if n_levels >= 2:
                try:
                    rows.append({**key, **fit_oneway(part, response, treatment)})
                except (ValueError, np.linalg.LinAlgError) as e:
                    logger.warning(f"ANOVA failed for group {key}: {e}")
                    rows.append({**key, "note": f"ANOVA failed: {e}"})
            else:
                logger.info(f"Skipping group {key}: not enough treatment levels")
                rows.append({**key, "note": NOTE_INSUFFICIENT_LEVELS})

    if not rows:
        raise EmptyResultError(f"No result: no groups found for columns {columns}")

    result = pd.DataFrame(rows)
    ordered = groups + [c for c in ANOVA_COLUMNS + ["note"] if c in result.columns]
    return result[ordered]


def significant_mask(anova_result: pd.DataFrame, alpha: float = ALPHA) -> pd.Series:
    """Boolean mask of rows with ``p_value < alpha``; NaN is never significant."""
    if "p_value" not in anova_result.columns:
        return pd.Series(False, index=anova_result.index)
    return anova_result["p_value"].lt(alpha).fillna(False).astype(bool)


def is_fitted(model: Any) -> bool:
    """True when ``model`` is a fitted statsmodels results object."""
    return model is not None and hasattr(model, "model") and hasattr(model.model, "data")


def model_frame(model: Any, response: str, treatment: str) -> pd.DataFrame:
    """Return the rows a fitted ANOVA model was estimated on.

    The frame keeps every column the model was given (grouping columns
    included), restricted to rows with a response and a treatment.
    """
    frame = model.model.data.frame
    return frame.dropna(subset=[response, treatment]).copy()
