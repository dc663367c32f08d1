"""Grouped hypothesis testing with conditional post-hoc comparisons.

This module provides:

- Grouped one-way ANOVA (one model per grouping key)
- ANOVA followed by pairwise t-tests or Tukey HSD on significant groups,
  in a manual (nested, count-corrected) or delegated strategy
- Resilient grouped t-tests that drop under-populated grouping keys
- Significance codes and p-value adjustment helpers

Public API:
-----------
from groupstats.stats import anova_ttest, anova_tukey, t_test_resilient2

# ANOVA per site, t-tests where the ANOVA is significant
result = anova_ttest(df, "height", "fertiliser", groups=["site"])

# Tukey HSD in delegated mode
result = anova_tukey(df, "height", "fertiliser", groups=["site"], mode="delegated")

# Two-level comparison per site, skipping sites that cannot be tested
result = t_test_resilient2(df, "height ~ fertiliser", groups=["site"])
"""

from groupstats.stats.anova import fit_grouped_anova
from groupstats.stats.posthoc import anova_ttest, anova_tukey
from groupstats.stats.significance import add_significance, adjust_pvalues, signif_code
from groupstats.stats.ttest import t_test, t_test_resilient, t_test_resilient2
from groupstats.stats.tukey import tukey_hsd

__all__ = [
    "fit_grouped_anova",
    "anova_ttest",
    "anova_tukey",
    "t_test",
    "t_test_resilient",
    "t_test_resilient2",
    "tukey_hsd",
    "signif_code",
    "add_significance",
    "adjust_pvalues",
]
