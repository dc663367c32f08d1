"""Boxplots with significance brackets."""

from __future__ import annotations

import warnings
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib
import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
import seaborn as sns

from groupstats.plots.signif import geom_signif
from groupstats.stats.preprocess import treatment_levels

# Suppress seaborn/pandas FutureWarnings
warnings.filterwarnings("ignore", category=FutureWarning, module="seaborn")
warnings.filterwarnings("ignore", category=FutureWarning, module="pandas")


def choose_colors(levels: List[str]) -> Dict[str, tuple]:
    """Map treatment levels to colors.

    Uses fixed order: blue, red, yellow, green for the first 4 levels,
    then the tab20 colormap for additional levels.

    Args:
        levels: Treatment levels in plotting order

    Returns:
        Dictionary mapping level to RGBA tuple
    """
    base_names = ["blue", "red", "yellow", "green"]
    colors = {}

    for i, c in enumerate(levels[: len(base_names)]):
        colors[c] = mcolors.to_rgba(base_names[i])

    if len(levels) > len(base_names):
        extra_cmap = matplotlib.colormaps["tab20"].resampled(len(levels) - len(base_names))
        for j, c in enumerate(levels[len(base_names) :]):
            colors[c] = extra_cmap(j)

    return colors


def signif_boxplot(
    df: pd.DataFrame,
    x: str,
    y: str,
    annotations: pd.DataFrame,
    order: Optional[Sequence] = None,
    mapping: Optional[Dict[str, str]] = None,
    step_increase: float = 0.0,
    y_offset: float = 0.0,
    fig_dpi: int = 160,
    point_size: float = 36.0,
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """Draw a boxplot of ``y`` by ``x`` with significance brackets on top.

    Args:
        df: Observation table
        x: Categorical column
        y: Numeric column
        annotations: Bracket table (see ``geom_signif``)
        order: Level order on the x axis (default: sorted levels)
        mapping: Field -> column overrides for ``annotations``
        step_increase: Extra height per stacked bracket sharing a span
        y_offset: Height added to every bracket
        fig_dpi: Figure DPI when a new figure is created
        point_size: Scatter point size
        ax: Existing axes to draw on

    Returns:
        The matplotlib Figure
    """
    levels = list(order) if order is not None else treatment_levels(df[x])
    colors = choose_colors(levels)

    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4.5), dpi=fig_dpi)
    else:
        fig = ax.figure

    sns.boxplot(
        data=df,
        x=x,
        y=y,
        hue=x,
        order=levels,
        hue_order=levels,
        palette=[colors[c] for c in levels],
        legend=False,
        fliersize=0,
        width=0.6,
        ax=ax,
    )

    sns.stripplot(
        data=df,
        x=x,
        y=y,
        order=levels,
        color="black",
        size=np.sqrt(point_size),
        alpha=0.55,
        jitter=0.2,
        ax=ax,
    )

    geom_signif(
        annotations,
        ax=ax,
        mapping=mapping,
        x_levels=levels,
        step_increase=step_increase,
        y_offset=y_offset,
    )

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.grid(axis="y", alpha=0.2)
    fig.tight_layout()

    return fig
