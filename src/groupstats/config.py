"""Configuration dataclasses and shared constants for groupstats pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

# ANOVA significance gate; strict less-than
ALPHA = 0.05

# Significance-code bands, checked in order with strict less-than
SIGNIF_CUTPOINTS = [(0.0001, "****"), (0.001, "***"), (0.01, "**"), (0.05, "*")]
NOT_SIGNIFICANT = "ns"

# p-value adjustment names (R-style and statsmodels-style) -> multipletests method.
# None means no adjustment.
ADJUST_METHODS: Dict[str, Optional[str]] = {
    "none": None,
    "holm": "holm",
    "hochberg": "simes-hochberg",
    "hommel": "hommel",
    "bonferroni": "bonferroni",
    "BH": "fdr_bh",
    "fdr": "fdr_bh",
    "BY": "fdr_by",
    "fdr_bh": "fdr_bh",
    "fdr_by": "fdr_by",
    "sidak": "sidak",
    "holm-sidak": "holm-sidak",
    "simes-hochberg": "simes-hochberg",
}


class PosthocMode(str, Enum):
    """How post-hoc comparisons are computed after a significant ANOVA.

    MANUAL nests per-group results under the ANOVA rows and applies a
    count-based Bonferroni correction. DELEGATED hands the significant
    groups' data to the grouped test and returns its native table.
    """

    MANUAL = "manual"
    DELEGATED = "delegated"


def resolve_adjust_method(method: str) -> Optional[str]:
    """Map an adjustment name onto the statsmodels ``multipletests`` method.

    Raises:
        ValueError: If the method is not recognised
    """
    if method not in ADJUST_METHODS:
        raise ValueError(
            f"adjust must be one of {sorted(ADJUST_METHODS)}, got {method!r}"
        )
    return ADJUST_METHODS[method]


@dataclass
class AnovaConfig:
    """Configuration for a grouped ANOVA + post-hoc run from a data file.

    Attributes:
        data_path: Path to the observation table (.csv, .parquet, or dataset dir)
        response: Numeric response column
        treatment: Treatment (factor) column
        outdir: Output directory for results
        groups: Grouping columns; one ANOVA is fit per grouping key
        posthoc: Post-hoc family: "ttest" or "tukey"
        run_posthoc: Whether to run manual post-hoc tests on significant groups
        clean: Drop auxiliary columns from the result
        mode: Post-hoc strategy (manual or delegated)
        adjust: p-value adjustment for delegated pairwise t-tests
        write_xlsx: Also write a formatted Excel workbook
    """

    data_path: Path
    response: str
    treatment: str
    outdir: Path = Path("derived")
    groups: List[str] = field(default_factory=list)
    posthoc: str = "ttest"
    run_posthoc: bool = True
    clean: bool = False
    mode: PosthocMode = PosthocMode.MANUAL
    adjust: str = "none"
    write_xlsx: bool = True

    def __post_init__(self):
        """Validate configuration."""
        self.data_path = Path(self.data_path)
        self.outdir = Path(self.outdir)
        self.groups = list(self.groups or [])
        self.mode = PosthocMode(self.mode)

        if not self.data_path.exists():
            raise FileNotFoundError(f"Data file not found: {self.data_path}")

        if self.posthoc not in ("ttest", "tukey"):
            raise ValueError(f"posthoc must be 'ttest' or 'tukey', got {self.posthoc}")

        resolve_adjust_method(self.adjust)

        if self.response == self.treatment:
            raise ValueError("response and treatment must be different columns")


@dataclass
class TTestConfig:
    """Configuration for a resilient grouped t-test run from a data file.

    Attributes:
        data_path: Path to the observation table
        formula: "response ~ treatment"
        outdir: Output directory
        groups: Grouping columns
        variant: 1 (every level must exceed 2 rows) or 2 (exactly two levels with >= 2 rows)
        write_xlsx: Also write a formatted Excel workbook
    """

    data_path: Path
    formula: str
    outdir: Path = Path("derived")
    groups: List[str] = field(default_factory=list)
    variant: int = 2
    write_xlsx: bool = True

    def __post_init__(self):
        """Validate configuration."""
        self.data_path = Path(self.data_path)
        self.outdir = Path(self.outdir)
        self.groups = list(self.groups or [])

        if not self.data_path.exists():
            raise FileNotFoundError(f"Data file not found: {self.data_path}")

        if self.variant not in (1, 2):
            raise ValueError(f"variant must be 1 or 2, got {self.variant}")


@dataclass
class PlotConfig:
    """Configuration for a boxplot with significance brackets.

    Attributes:
        data_path: Observation table
        annotations_path: Table of brackets (xmin, xmax, y position, label)
        x: Categorical column on the x axis
        y: Numeric column on the y axis
        outdir: Output directory
        step_increase: Extra height per stacked bracket sharing the same span
        y_offset: Height added to every bracket
        annotation_col: Column holding bracket labels
        y_col: Column holding bracket heights
        fig_dpi: Figure DPI
    """

    data_path: Path
    annotations_path: Path
    x: str
    y: str
    outdir: Path = Path("derived")
    step_increase: float = 0.0
    y_offset: float = 0.0
    annotation_col: str = "p_adj_signif"
    y_col: str = "y_position"
    fig_dpi: int = 160

    def __post_init__(self):
        """Validate configuration."""
        self.data_path = Path(self.data_path)
        self.annotations_path = Path(self.annotations_path)
        self.outdir = Path(self.outdir)

        for path in (self.data_path, self.annotations_path):
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")

        if self.fig_dpi <= 0:
            raise ValueError(f"fig_dpi must be positive, got {self.fig_dpi}")
