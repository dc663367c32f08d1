"""
groupstats: grouped hypothesis tests with conditional post-hoc comparisons.

This package provides:
- Grouped one-way ANOVA with pairwise t-tests or Tukey HSD on significant groups
- Resilient grouped t-tests that skip under-populated grouping keys
- Significance-bracket annotations for matplotlib/seaborn plots
- CLI tools for file-driven runs
"""

__version__ = "0.1.0"

from groupstats.config import PosthocMode
from groupstats.stats.anova import fit_grouped_anova
from groupstats.stats.posthoc import anova_ttest, anova_tukey
from groupstats.stats.ttest import t_test, t_test_resilient, t_test_resilient2
from groupstats.stats.tukey import tukey_hsd
from groupstats.plots.signif import geom_signif

__all__ = [
    "__version__",
    "PosthocMode",
    "fit_grouped_anova",
    "anova_ttest",
    "anova_tukey",
    "t_test",
    "t_test_resilient",
    "t_test_resilient2",
    "tukey_hsd",
    "geom_signif",
]
