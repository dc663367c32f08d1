"""Main CLI entrypoint using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from groupstats import __version__
from groupstats.config import PosthocMode

app = typer.Typer(
    name="groupstats",
    help="Grouped ANOVA, post-hoc tests and significance brackets.",
    add_completion=False,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"groupstats {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """groupstats: grouped hypothesis tests with conditional post-hoc comparisons."""
    pass


@app.command()
def anova(
    data: Path = typer.Option(
        ...,
        "--data",
        help="Path to data file (.csv, .parquet) or directory (parquet dataset).",
    ),
    response: str = typer.Option(..., "--response", help="Numeric response column"),
    treatment: str = typer.Option(..., "--treatment", help="Treatment (factor) column"),
    groups: Optional[List[str]] = typer.Option(
        None, "--group", help="Grouping column (repeat for several)"
    ),
    posthoc: str = typer.Option("ttest", "--posthoc", help="Post-hoc family: ttest or tukey"),
    mode: PosthocMode = typer.Option(PosthocMode.MANUAL, "--mode", help="Post-hoc strategy"),
    adjust: str = typer.Option("none", "--adjust", help="p-value adjustment (delegated t-tests)"),
    no_posthoc: bool = typer.Option(False, "--no-posthoc", help="Only run the ANOVA (manual mode)"),
    clean: bool = typer.Option(False, "--clean", help="Drop auxiliary columns (manual mode)"),
    outdir: Path = typer.Option(Path("derived"), "--outdir", help="Output directory"),
    no_xlsx: bool = typer.Option(False, "--no-xlsx", help="Skip the Excel workbook"),
):
    """
    Run a grouped one-way ANOVA with post-hoc tests on significant groups.

    Examples:
        groupstats anova --data plants.csv --response height --treatment fertiliser --group site

        groupstats anova --data plants.parquet --response height --treatment fertiliser \\
            --group site --posthoc tukey --mode delegated
    """
    from groupstats.api import run_anova_posthoc

    try:
        results = run_anova_posthoc(
            data_path=data,
            response=response,
            treatment=treatment,
            outdir=outdir,
            groups=groups or [],
            posthoc=posthoc,
            run_posthoc=not no_posthoc,
            clean=clean,
            mode=mode,
            adjust=adjust,
            write_xlsx=not no_xlsx,
        )
    except Exception as e:
        typer.secho(f"\n✗ ANOVA failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\n✓ Results saved to {results['csv']}", fg=typer.colors.GREEN)
    typer.echo(f"  Rows: {results['n_rows']}")


@app.command()
def ttest(
    data: Path = typer.Option(
        ...,
        "--data",
        help="Path to data file (.csv, .parquet) or directory (parquet dataset).",
    ),
    formula: str = typer.Option(..., "--formula", help="'response ~ treatment'"),
    groups: Optional[List[str]] = typer.Option(
        None, "--group", help="Grouping column (repeat for several)"
    ),
    variant: int = typer.Option(
        2,
        "--variant",
        help="1: every level needs more than 2 rows; 2: exactly two levels with at least 2 rows",
    ),
    outdir: Path = typer.Option(Path("derived"), "--outdir", help="Output directory"),
    no_xlsx: bool = typer.Option(False, "--no-xlsx", help="Skip the Excel workbook"),
):
    """
    Run a grouped t-test that skips grouping keys with too few observations.

    Examples:
        groupstats ttest --data plants.csv --formula "height ~ fertiliser" --group site
    """
    from groupstats.api import run_resilient_ttest

    try:
        results = run_resilient_ttest(
            data_path=data,
            formula=formula,
            outdir=outdir,
            groups=groups or [],
            variant=variant,
            write_xlsx=not no_xlsx,
        )
    except Exception as e:
        typer.secho(f"\n✗ t-test failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\n✓ Results saved to {results['csv']}", fg=typer.colors.GREEN)
    typer.echo(f"  Comparisons: {results['n_rows']}")


@app.command()
def plot(
    data: Path = typer.Option(..., "--data", help="Observation table"),
    annotations: Path = typer.Option(..., "--annotations", help="Bracket table"),
    x: str = typer.Option(..., "--x", help="Categorical column on the x axis"),
    y: str = typer.Option(..., "--y", help="Numeric column on the y axis"),
    step_increase: float = typer.Option(0.0, "--step-increase", help="Extra height per stacked bracket"),
    y_offset: float = typer.Option(0.0, "--y-offset", help="Height added to every bracket"),
    annotation_col: str = typer.Option("p_adj_signif", "--annotation-col", help="Label column"),
    y_col: str = typer.Option("y_position", "--y-col", help="Bracket height column"),
    fig_dpi: int = typer.Option(160, "--fig-dpi", help="Figure DPI"),
    outdir: Path = typer.Option(Path("derived"), "--outdir", help="Output directory"),
):
    """
    Draw a boxplot with significance brackets.

    Examples:
        groupstats plot --data plants.csv --annotations brackets.csv --x fertiliser --y height \\
            --step-increase 0.5
    """
    from groupstats.api import run_signif_plot

    try:
        results = run_signif_plot(
            data_path=data,
            annotations_path=annotations,
            x=x,
            y=y,
            outdir=outdir,
            step_increase=step_increase,
            y_offset=y_offset,
            annotation_col=annotation_col,
            y_col=y_col,
            fig_dpi=fig_dpi,
        )
    except Exception as e:
        typer.secho(f"\n✗ Plot failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\n✓ Plot saved to {results['png']}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
