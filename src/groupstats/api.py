"""File-driven runners for the grouped test pipelines."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import matplotlib

from groupstats.config import AnovaConfig, PlotConfig, PosthocMode, TTestConfig
from groupstats.data import load_table, validate_columns
from groupstats.stats.excel import write_results_csv, write_results_workbook
from groupstats.stats.posthoc import anova_ttest, anova_tukey
from groupstats.stats.ttest import parse_formula, t_test_resilient, t_test_resilient2

logger = logging.getLogger(__name__)


def _write_outputs(table: pd.DataFrame, outdir: Path, stem: str, write_xlsx: bool) -> Dict[str, Optional[Path]]:
    out_csv = write_results_csv(outdir, table, f"{stem}.csv")
    print(f"  • {out_csv}")

    out_xlsx = None
    if write_xlsx:
        out_xlsx = write_results_workbook(outdir, {stem: table}, f"{stem}.xlsx")
        print(f"  • {out_xlsx}")

    return {"csv": out_csv, "xlsx": out_xlsx}


def run_anova_posthoc(
    data_path: Path | str,
    response: str,
    treatment: str,
    outdir: Path | str = "derived",
    groups: Optional[List[str]] = None,
    posthoc: str = "ttest",
    run_posthoc: bool = True,
    clean: bool = False,
    mode: PosthocMode | str = PosthocMode.MANUAL,
    adjust: str = "none",
    write_xlsx: bool = True,
) -> Dict[str, Any]:
    """Run grouped ANOVA with conditional post-hoc tests on a data file.

    Args:
        data_path: Observation table (.csv, .parquet, or parquet dataset dir)
        response: Numeric response column
        treatment: Treatment column
        outdir: Output directory
        groups: Grouping columns
        posthoc: "ttest" or "tukey"
        run_posthoc: Run manual post-hoc tests on significant groups (delegated
            mode always runs them)
        clean: Drop auxiliary columns (manual mode)
        mode: "manual" or "delegated"
        adjust: p-value adjustment for delegated t-tests
        write_xlsx: Also write an Excel workbook

    Returns:
        Dictionary with the result table and output paths

    Example:
        >>> from groupstats.api import run_anova_posthoc
        >>> results = run_anova_posthoc(
        ...     "plants.csv", "height", "fertiliser", groups=["site"], posthoc="tukey"
        ... )
        >>> print(results["csv"])
    """
    config = AnovaConfig(
        data_path=Path(data_path),
        response=response,
        treatment=treatment,
        outdir=Path(outdir),
        groups=groups or [],
        posthoc=posthoc,
        run_posthoc=run_posthoc,
        clean=clean,
        mode=mode,
        adjust=adjust,
        write_xlsx=write_xlsx,
    )
    return run_anova_posthoc_from_config(config)


def run_anova_posthoc_from_config(config: AnovaConfig) -> Dict[str, Any]:
    """Run grouped ANOVA + post-hoc from an AnovaConfig object."""
    print(f"Loading data from {config.data_path}...")
    df = load_table(config.data_path)
    validate_columns(df, response=config.response, treatment=config.treatment, groups=config.groups)

    print(f"  • Rows: {len(df)}")
    print(f"  • Groups: {config.groups or '(none)'}")

    print(f"\n[1/2] Running ANOVA + {config.posthoc} ({config.mode.value})...")
    if config.posthoc == "tukey":
        table = anova_tukey(
            df,
            config.response,
            config.treatment,
            config.groups,
            do_tukey=config.run_posthoc,
            clean=config.clean,
            mode=config.mode,
        )
    else:
        table = anova_ttest(
            df,
            config.response,
            config.treatment,
            config.groups,
            do_ttest=config.run_posthoc,
            clean=config.clean,
            mode=config.mode,
            adjust=config.adjust,
        )

    print("[2/2] Writing outputs...")
    stem = f"anova_{config.posthoc}"
    paths = _write_outputs(table, config.outdir, stem, config.write_xlsx)

    print("\n✓ ANOVA complete.")
    return {"table": table, "n_rows": len(table), **paths}


def run_resilient_ttest(
    data_path: Path | str,
    formula: str,
    outdir: Path | str = "derived",
    groups: Optional[List[str]] = None,
    variant: int = 2,
    write_xlsx: bool = True,
) -> Dict[str, Any]:
    """Run a resilient grouped t-test on a data file.

    Args:
        data_path: Observation table
        formula: "response ~ treatment"
        outdir: Output directory
        groups: Grouping columns
        variant: 1 or 2 (see ``groupstats.stats.ttest``)
        write_xlsx: Also write an Excel workbook

    Returns:
        Dictionary with the result table and output paths
    """
    config = TTestConfig(
        data_path=Path(data_path),
        formula=formula,
        outdir=Path(outdir),
        groups=groups or [],
        variant=variant,
        write_xlsx=write_xlsx,
    )
    return run_resilient_ttest_from_config(config)


def run_resilient_ttest_from_config(config: TTestConfig) -> Dict[str, Any]:
    """Run a resilient grouped t-test from a TTestConfig object."""
    response, treatment = parse_formula(config.formula)

    print(f"Loading data from {config.data_path}...")
    df = load_table(config.data_path)
    validate_columns(df, response=response, treatment=treatment, groups=config.groups)
    print(f"  • Rows: {len(df)}")

    print(f"\n[1/2] Running resilient t-test (variant {config.variant})...")
    runner = t_test_resilient if config.variant == 1 else t_test_resilient2
    table = runner(df, config.formula, config.groups)

    if table.empty:
        logger.warning("No grouping key survived the cell-count filter")

    print("[2/2] Writing outputs...")
    paths = _write_outputs(table, config.outdir, f"ttest_resilient{config.variant}", config.write_xlsx)

    print("\n✓ t-test complete.")
    return {"table": table, "n_rows": len(table), **paths}


def run_signif_plot(
    data_path: Path | str,
    annotations_path: Path | str,
    x: str,
    y: str,
    outdir: Path | str = "derived",
    step_increase: float = 0.0,
    y_offset: float = 0.0,
    annotation_col: str = "p_adj_signif",
    y_col: str = "y_position",
    fig_dpi: int = 160,
) -> Dict[str, Any]:
    """Draw a boxplot with significance brackets from two tables.

    The annotation table needs bracket ends (``xmin``/``xmax``, or
    ``group1``/``group2``), a height column ``y_col`` and a label column
    ``annotation_col``.

    Returns:
        Dictionary with the PNG path and the number of brackets
    """
    config = PlotConfig(
        data_path=Path(data_path),
        annotations_path=Path(annotations_path),
        x=x,
        y=y,
        outdir=Path(outdir),
        step_increase=step_increase,
        y_offset=y_offset,
        annotation_col=annotation_col,
        y_col=y_col,
        fig_dpi=fig_dpi,
    )
    return run_signif_plot_from_config(config)


def run_signif_plot_from_config(config: PlotConfig) -> Dict[str, Any]:
    """Draw a bracketed boxplot from a PlotConfig object."""
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    from groupstats.plots.boxplot import signif_boxplot

    print(f"Loading data from {config.data_path}...")
    df = load_table(config.data_path)
    validate_columns(df, response=config.y, treatment=config.x)

    print(f"Loading annotations from {config.annotations_path}...")
    annotations = load_table(config.annotations_path)

    mapping = {"y": config.y_col, "annotation": config.annotation_col}
    if "xmin" not in annotations.columns and {"group1", "group2"}.issubset(annotations.columns):
        mapping.update({"xmin": "group1", "xmax": "group2"})

    print(f"  • Brackets: {len(annotations)}")

    fig = signif_boxplot(
        df,
        config.x,
        config.y,
        annotations,
        mapping=mapping,
        step_increase=config.step_increase,
        y_offset=config.y_offset,
        fig_dpi=config.fig_dpi,
    )

    config.outdir.mkdir(parents=True, exist_ok=True)
    out_png = config.outdir / f"{config.y}_by_{config.x}.png"
    fig.savefig(out_png)
    plt.close(fig)
    print(f"  • {out_png}")

    print("\n✓ Plot complete.")
    return {"png": out_png, "n_brackets": len(annotations)}
