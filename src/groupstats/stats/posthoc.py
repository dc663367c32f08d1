"""Grouped ANOVA followed by conditional post-hoc tests.

Both pipelines fit one ANOVA per grouping key, then run post-hoc
comparisons only on keys whose ANOVA p-value is below 0.05.

Manual strategy: post-hoc rows are nested under their ANOVA row (columns
prefixed ``ttest__`` or ``tukey_``) and p-values are multiplied by the
number of comparisons performed.

Delegated strategy: the significant keys' model data is pooled, treatment
levels with fewer than 2 rows are dropped, and the grouped test's own
table is returned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
import numpy as np
import pandas as pd

from groupstats.config import ALPHA, PosthocMode, resolve_adjust_method
from groupstats.stats.anova import fit_grouped_anova, is_fitted, model_frame, significant_mask
from groupstats.stats.preprocess import drop_sparse_levels
from groupstats.stats.significance import add_significance, adjust_pvalue_column, signif_code
from groupstats.stats.ttest import t_test
from groupstats.stats.tukey import tukey_hsd, tukey_hsd_model

logger = logging.getLogger(__name__)

NOTE_ABOVE_ALPHA = "p-value is above 0.05"
NOTE_TTEST_NOT_SIGNIFICANT = "ANOVA p value is higher than 0.05"
NOTE_TUKEY_NOT_SIGNIFICANT = "ANOVA not significant"

TTEST_CLEAN_DROP = ["df", "df_residual", "sumsq", "meansq", "statistic", "anova_model"]
TUKEY_CLEAN_DROP = [
    "sumsq",
    "meansq",
    "statistic",
    "anova_model",
    "tukey_conf_high",
    "tukey_conf_low",
    "tukey_null_value",
    "tukey_estimate",
]


def significance_gate(anova_result: pd.DataFrame) -> Optional[pd.DataFrame]:
    """Decide whether post-hoc work should run.

    Returns:
        The table to hand back unchanged when there is nothing to test, or
        None when at least one group is significant.
    """
    if "p_value" not in anova_result.columns:
        logger.info("No group had enough treatment levels; returning ANOVA table")
        return anova_result

    n_significant = int(significant_mask(anova_result).sum())
    logger.info(f"Number of tests below {ALPHA}: {n_significant}")

    if n_significant < 1:
        result = anova_result.copy()
        if "note" not in result.columns:
            result["note"] = pd.Series([None] * len(result), index=result.index, dtype=object)
        result.loc[result["p_value"].notna(), "note"] = NOTE_ABOVE_ALPHA
        return result

    return None


def _nest(table: pd.DataFrame, nested: List[List[Dict[str, Any]]]) -> pd.DataFrame:
    """Repeat each row of ``table`` once per nested record and merge the fields in."""
    rows = []
    for (_, row), records in zip(table.iterrows(), nested):
        base = row.to_dict()
        rows.extend({**base, **rec} for rec in (records or [{}]))
    return pd.DataFrame(rows)


def _significant_model_data(
    anova_result: pd.DataFrame, response: str, treatment: str, groups: Sequence[str]
) -> pd.DataFrame:
    """Pool the model data of significant groups, dropping levels with fewer than 2 rows."""
    significant = anova_result[significant_mask(anova_result)]
    frames = [
        model_frame(model, response, treatment)
        for model in significant["anova_model"]
        if is_fitted(model)
    ]
    data = pd.concat(frames, ignore_index=True)
    return drop_sparse_levels(data, groups, treatment, min_n=2)


def _manual_ttest(
    anova_result: pd.DataFrame, response: str, treatment: str, clean: bool
) -> pd.DataFrame:
    table = anova_result.rename(columns={"p_value": "anova_p_value"})

    nested = []
    for _, row in table.iterrows():
        p = row["anova_p_value"]
        if pd.isna(p):
            nested.append([])
        elif p < ALPHA and is_fitted(row["anova_model"]):
            frame = model_frame(row["anova_model"], response, treatment)
            nested.append(t_test(frame, response, treatment).add_prefix("ttest__").to_dict("records"))
        else:
            nested.append([{"ttest__note": NOTE_TTEST_NOT_SIGNIFICANT}])

    result = _nest(table, nested)

    if "ttest__p" not in result.columns:
        return result

    n_comparisons = int(result["ttest__p"].notna().sum())
    logger.info(f"Correcting {n_comparisons} t-test p-values")
    result["ttest__p_adj"] = result["ttest__p"] * n_comparisons
    result["ttest__p_adj_signif"] = [signif_code(p) for p in result["ttest__p_adj"]]

    if clean:
        result = result.drop(columns=TTEST_CLEAN_DROP, errors="ignore")
    return result


def _delegated_ttest(
    anova_result: pd.DataFrame,
    response: str,
    treatment: str,
    groups: Sequence[str],
    adjust: str,
) -> pd.DataFrame:
    data = _significant_model_data(anova_result, response, treatment, groups)
    result = t_test(data, response, treatment, groups, p_adjust_method="none")
    result = adjust_pvalue_column(result, adjust, p_col="p", output_col="p_adj")
    return add_significance(result, p_col="p_adj")


def _manual_tukey(
    anova_result: pd.DataFrame, response: str, treatment: str, clean: bool
) -> pd.DataFrame:
    table = anova_result.rename(columns={"p_value": "anova_p_value"})

    nested = []
    n_valid = 0
    for _, row in table.iterrows():
        p = row["anova_p_value"]
        model = row["anova_model"]
        if pd.isna(p):
            nested.append([])
        elif not is_fitted(model):
            nested.append([{"tukey_term": np.nan}])
        elif p < ALPHA:
            try:
                tidy = tukey_hsd_model(model, response, treatment)
            except (ValueError, ZeroDivisionError, np.linalg.LinAlgError) as e:
                logger.warning(f"Tukey HSD failed: {e}")
                nested.append([{"tukey_term": np.nan}])
                continue
            n_valid += 1
            nested.append(tidy.add_prefix("tukey_").to_dict("records"))
        else:
            nested.append([{"tukey_note": NOTE_TUKEY_NOT_SIGNIFICANT}])

    result = _nest(table, nested)

    if "tukey_adj_p_value" in result.columns:
        logger.info(f"Correcting Tukey p-values for {n_valid} test(s)")
        result["bonferroni_adj_p_value"] = result["tukey_adj_p_value"] * n_valid
        result["sig"] = [signif_code(p) for p in result["bonferroni_adj_p_value"]]

    if clean:
        result = result.drop(columns=TUKEY_CLEAN_DROP, errors="ignore")
    return result


def _delegated_tukey(
    anova_result: pd.DataFrame, response: str, treatment: str, groups: Sequence[str]
) -> pd.DataFrame:
    data = _significant_model_data(anova_result, response, treatment, groups)
    return tukey_hsd(data, response, treatment, groups)


def anova_ttest(
    df: pd.DataFrame,
    response: str,
    treatment: str,
    groups: Optional[Sequence[str]] = None,
    do_ttest: bool = True,
    clean: bool = False,
    mode: PosthocMode | str = PosthocMode.MANUAL,
    adjust: str = "none",
) -> pd.DataFrame:
    """Grouped ANOVA with pairwise t-tests on the significant groups.

    Args:
        df: Observation table
        response: Numeric response column
        treatment: Treatment column
        groups: Grouping columns; one ANOVA per grouping key
        do_ttest: Run manual t-tests when at least one ANOVA is significant;
            delegated mode always runs them
        clean: Drop ANOVA sums of squares, statistics and model objects (manual mode)
        mode: ``PosthocMode.MANUAL`` or ``PosthocMode.DELEGATED``
        adjust: p-value adjustment for delegated mode (e.g. "none", "holm", "BH")

    Returns:
        The ANOVA table when there is nothing to test (with a ``note`` column
        when no group is significant); otherwise the post-hoc table of the
        selected mode. In manual mode a grouping key with fewer than 2
        treatment levels keeps its ANOVA row with only the ``note`` filled and
        no ``ttest__`` fields.

    Example:
        >>> from groupstats import anova_ttest
        >>> result = anova_ttest(df, "height", "fertiliser", groups=["site"])
        >>> result[["site", "ttest__group1", "ttest__group2", "ttest__p_adj_signif"]]
    """
    mode = PosthocMode(mode)
    resolve_adjust_method(adjust)
    groups = list(groups or [])

    anova_result = fit_grouped_anova(df, response, treatment, groups)

    early = significance_gate(anova_result)
    if early is not None:
        return early
    if not do_ttest and mode is PosthocMode.MANUAL:
        return anova_result

    if mode is PosthocMode.DELEGATED:
        logger.info("Running delegated pairwise t-tests")
        return _delegated_ttest(anova_result, response, treatment, groups, adjust)

    logger.info("Running manual pairwise t-tests")
    return _manual_ttest(anova_result, response, treatment, clean)


def anova_tukey(
    df: pd.DataFrame,
    response: str,
    treatment: str,
    groups: Optional[Sequence[str]] = None,
    do_tukey: bool = True,
    clean: bool = False,
    mode: PosthocMode | str = PosthocMode.MANUAL,
) -> pd.DataFrame:
    """Grouped ANOVA with Tukey HSD on the significant groups.

    Args:
        df: Observation table
        response: Numeric response column
        treatment: Treatment column
        groups: Grouping columns; one ANOVA per grouping key
        do_tukey: Run manual Tukey HSD when at least one ANOVA is significant;
            delegated mode always runs it
        clean: Keep only term, corrected p-value and code (manual mode)
        mode: ``PosthocMode.MANUAL`` or ``PosthocMode.DELEGATED``

    Returns:
        The ANOVA table when there is nothing to test; otherwise the
        post-hoc table of the selected mode. Manual mode adds
        ``bonferroni_adj_p_value`` and ``sig``; there a grouping key with fewer
        than 2 treatment levels keeps its ANOVA row with no ``tukey_`` fields.
    """
    mode = PosthocMode(mode)
    groups = list(groups or [])

    anova_result = fit_grouped_anova(df, response, treatment, groups)

    early = significance_gate(anova_result)
    if early is not None:
        return early
    if not do_tukey and mode is PosthocMode.MANUAL:
        return anova_result

    if mode is PosthocMode.DELEGATED:
        logger.info("Running delegated Tukey HSD")
        return _delegated_tukey(anova_result, response, treatment, groups)

    logger.info("Running manual Tukey HSD")
    return _manual_tukey(anova_result, response, treatment, clean)
