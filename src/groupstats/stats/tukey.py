"""Tukey HSD post-hoc comparisons."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
import numpy as np
import pandas as pd
from statsmodels.stats.multicomp import pairwise_tukeyhsd

from groupstats.config import ALPHA
from groupstats.data.validation import validate_columns
from groupstats.stats.anova import model_frame
from groupstats.stats.preprocess import iter_groups
from groupstats.stats.significance import signif_code

TUKEY_COLUMNS = [
    "term",
    "group1",
    "group2",
    "null_value",
    "estimate",
    "conf_low",
    "conf_high",
    "p_adj",
    "p_adj_signif",
]

TIDY_COLUMNS = [
    "term",
    "contrast",
    "null_value",
    "estimate",
    "conf_low",
    "conf_high",
    "adj_p_value",
]


def pairwise_tukey(
    values: np.ndarray, labels: np.ndarray, alpha: float = ALPHA
) -> List[Dict[str, Any]]:
    """Run Tukey HSD over every pair of labels.

    Args:
        values: Response values
        labels: Treatment label per value
        alpha: Family-wise error rate for the confidence intervals

    Returns:
        List of dictionaries, one per pair (in statsmodels' pair order).
        Keys: group1, group2, estimate (mean of group2 minus mean of
        group1), conf_low, conf_high, p_adj
    """
    tuk = pairwise_tukeyhsd(endog=values, groups=labels, alpha=alpha)
    levels = tuk.groupsunique
    idx1, idx2 = np.triu_indices(len(levels), 1)

    rows = []
    for k, (i, j) in enumerate(zip(idx1, idx2)):
        rows.append(
            {
                "group1": levels[i],
                "group2": levels[j],
                "estimate": float(tuk.meandiffs[k]),
                "conf_low": float(tuk.confint[k, 0]),
                "conf_high": float(tuk.confint[k, 1]),
                "p_adj": float(tuk.pvalues[k]),
            }
        )
    return rows


def tukey_hsd_model(model: Any, response: str, treatment: str) -> pd.DataFrame:
    """Tukey HSD on the data a fitted ANOVA model was estimated on.

    Args:
        model: Fitted statsmodels results from ``fit_grouped_anova``
        response: Response column name
        treatment: Treatment column name

    Returns:
        DataFrame with ``TIDY_COLUMNS``, one row per contrast. ``contrast``
        reads ``"B-A"`` and ``estimate`` is mean(B) - mean(A).
    """
    frame = model_frame(model, response, treatment)
    pairs = pairwise_tukey(
        frame[response].to_numpy(dtype=float), frame[treatment].astype(str).to_numpy()
    )

    rows = [
        {
            "term": treatment,
            "contrast": f"{p['group2']}-{p['group1']}",
            "null_value": 0.0,
            "estimate": p["estimate"],
            "conf_low": p["conf_low"],
            "conf_high": p["conf_high"],
            "adj_p_value": p["p_adj"],
        }
        for p in pairs
    ]
    return pd.DataFrame(rows, columns=TIDY_COLUMNS)


def tukey_hsd(
    df: pd.DataFrame,
    response: str,
    treatment: str,
    groups: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Grouped Tukey HSD straight from the observation rows.

    Args:
        df: Observation table
        response: Numeric response column
        treatment: Treatment column
        groups: Grouping columns (None/empty = a single group)

    Returns:
        DataFrame with the grouping columns followed by ``TUKEY_COLUMNS``.
        Grouping keys with fewer than 2 treatment levels produce no rows.
    """
    groups = list(groups or [])
    validate_columns(df, response=response, treatment=treatment, groups=groups)

    rows = []
    for key, part in iter_groups(df, groups):
        part = part.dropna(subset=[response, treatment])
        if part[treatment].nunique() < 2:
            continue

        pairs = pairwise_tukey(
            part[response].to_numpy(dtype=float), part[treatment].astype(str).to_numpy()
        )
        for p in pairs:
            rows.append(
                {
                    **key,
                    "term": treatment,
                    "group1": p["group1"],
                    "group2": p["group2"],
                    "null_value": 0.0,
                    "estimate": p["estimate"],
                    "conf_low": p["conf_low"],
                    "conf_high": p["conf_high"],
                    "p_adj": p["p_adj"],
                    "p_adj_signif": signif_code(p["p_adj"]),
                }
            )

    return pd.DataFrame(rows, columns=groups + TUKEY_COLUMNS)
