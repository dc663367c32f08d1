"""Significance brackets for grouped comparison plots.

Annotation records (``xmin``, ``xmax``, ``y``, ``annotation``) are turned
into drawing primitives: a horizontal segment from ``xmin`` to ``xmax`` at
height ``y`` and a label centred above it. Records sharing the same
``(xmin, xmax)`` span are stacked: after sorting by ``y``, the k-th record
(0-based) is raised by ``k * step_increase + y_offset``.

Layout is pure data; drawing goes through a ``SignifRenderer``. The
matplotlib adapter is ``MatplotlibRenderer``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd
import matplotlib.pyplot as plt
from pandas.api.types import is_numeric_dtype

logger = logging.getLogger(__name__)

# Points per millimetre; sizes are given in ggplot units
PT = 72.27 / 25.4

REQUIRED_FIELDS = ["xmin", "xmax", "y", "annotation"]

DEFAULT_MAPPING: Dict[str, str] = {
    "y": "y_position",
    "xmin": "xmin",
    "xmax": "xmax",
    "annotation": "p_adj_signif",
}

LINETYPES = {
    "solid": "solid",
    "dashed": "dashed",
    "dotted": "dotted",
    "dotdash": "dashdot",
    "longdash": (0, (8, 3)),
    "twodash": (0, (4, 2, 8, 2)),
    "blank": "None",
}

STYLE_FIELDS = ["colour", "linewidth", "linetype", "alpha", "textsize"]


@dataclass
class SignifStyle:
    """Default drawing style for brackets and labels.

    Attributes:
        colour: Line and text colour
        linewidth: Line width in mm
        linetype: One of ``LINETYPES``
        alpha: Opacity
        textsize: Text size in mm
    """

    colour: str = "black"
    linewidth: float = 0.5
    linetype: str = "solid"
    alpha: float = 1.0
    textsize: float = 3.88

    def __post_init__(self):
        if self.linetype not in LINETYPES:
            raise ValueError(f"linetype must be one of {sorted(LINETYPES)}, got {self.linetype}")


@dataclass(frozen=True)
class Segment:
    """Horizontal bracket line in data coordinates."""

    x0: float
    x1: float
    y: float
    colour: str
    linewidth: float
    linestyle: Union[str, tuple]
    alpha: float


@dataclass(frozen=True)
class Label:
    """Text centred at ``x`` with its bottom edge at ``y``."""

    x: float
    y: float
    text: str
    colour: str
    fontsize: float
    alpha: float


class SignifRenderer(ABC):
    """Drawing backend for significance primitives."""

    @abstractmethod
    def draw_segment(self, segment: Segment) -> None:
        """Draw one bracket line."""
        raise NotImplementedError

    @abstractmethod
    def draw_label(self, label: Label) -> None:
        """Draw one bracket label."""
        raise NotImplementedError


class MatplotlibRenderer(SignifRenderer):
    """Draw primitives onto a matplotlib Axes.

    Labels are lifted by ``label_offset`` (fraction of the axes height)
    above their segment.
    """

    def __init__(self, ax: plt.Axes, label_offset: float = 0.02):
        self.ax = ax
        self.label_offset = label_offset

    def draw_segment(self, segment: Segment) -> None:
        self.ax.plot(
            [segment.x0, segment.x1],
            [segment.y, segment.y],
            color=segment.colour,
            linewidth=segment.linewidth,
            linestyle=segment.linestyle,
            alpha=segment.alpha,
            solid_capstyle="butt",
        )

    def draw_label(self, label: Label) -> None:
        # axes height in points
        height_pt = self.ax.bbox.height * 72.0 / self.ax.figure.dpi
        self.ax.annotate(
            label.text,
            xy=(label.x, label.y),
            xycoords="data",
            xytext=(0, self.label_offset * height_pt),
            textcoords="offset points",
            ha="center",
            va="bottom",
            color=label.colour,
            fontsize=label.fontsize,
            alpha=label.alpha,
            annotation_clip=False,
        )


def apply_mapping(data: pd.DataFrame, mapping: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Rename caller columns onto the annotation fields.

    Args:
        data: Annotation table (e.g. delegated post-hoc output with positions)
        mapping: Field -> column overrides on top of ``DEFAULT_MAPPING``

    Returns:
        DataFrame with the mapped fields plus any per-row style columns.
        A field whose column is absent is left out.
    """
    resolved = {**DEFAULT_MAPPING, **(mapping or {})}
    out = pd.DataFrame(index=data.index)
    for field, column in resolved.items():
        if column in data.columns:
            out[field] = data[column]
    for field in STYLE_FIELDS:
        if field in data.columns and field not in out.columns:
            out[field] = data[field]
    return out


def _as_positions(values: pd.Series, levels) -> pd.Series:
    """Map category labels to positions.

    ``levels`` is either a sequence (label -> 0-based index) or a mapping of
    label -> position, as read from an axis' ticks.
    """
    if isinstance(levels, Mapping):
        lookup = {str(level): float(pos) for level, pos in levels.items()}
    else:
        lookup = {str(level): float(i) for i, level in enumerate(levels)}
    positions = values.astype(str).map(lookup)
    if positions.isna().any():
        unknown = sorted(set(values[positions.isna()].astype(str)))
        raise ValueError(f"x positions not found in x_levels: {unknown}")
    return positions


def axis_levels(ax: plt.Axes) -> Optional[Dict[str, float]]:
    """Read the label -> position map of a categorical x axis, if any."""
    labels = [tick.get_text() for tick in ax.get_xticklabels()]
    if not labels or not all(labels):
        return None
    return dict(zip(labels, ax.get_xticks()))


def coerce_x(data: pd.DataFrame, x_levels=None) -> pd.DataFrame:
    """Make ``xmin``/``xmax`` numeric.

    Numeric positions always pass through. Category labels map along
    ``x_levels`` when given, otherwise along the categories of a categorical
    column.

    Raises:
        ValueError: If labels cannot be placed without ``x_levels``
    """
    out = data.copy()
    columns = ["xmin", "xmax"]

    if all(is_numeric_dtype(out[col]) for col in columns):
        for col in columns:
            out[col] = out[col].astype(float)
        return out

    numeric = {col: pd.to_numeric(out[col], errors="coerce") for col in columns}
    if all(numeric[col].notna().all() for col in columns):
        for col in columns:
            out[col] = numeric[col].astype(float)
        return out

    if x_levels is not None:
        levels = x_levels if isinstance(x_levels, Mapping) else list(x_levels)
    else:
        categorical = [col for col in columns if isinstance(out[col].dtype, pd.CategoricalDtype)]
        if not categorical:
            raise ValueError(
                "xmin/xmax hold category labels; pass x_levels with the category order of the x axis"
            )
        levels = list(out[categorical[0]].cat.categories)

    for col in columns:
        out[col] = _as_positions(out[col], levels)
    return out


def setup_annotation_data(
    data: pd.DataFrame,
    x_levels: Optional[Union[Sequence, Mapping]] = None,
    step_increase: Optional[float] = 0.0,
    y_offset: Optional[float] = 0.0,
) -> pd.DataFrame:
    """Validate annotation records and compute stacked bracket heights.

    Args:
        data: Records with ``xmin``, ``xmax``, ``y``, ``annotation``
        x_levels: Category order along the x axis, or a label -> position map
        step_increase: Height added per rank within one ``(xmin, xmax)`` span
        y_offset: Height added to every record

    Returns:
        Records sorted by ``y`` with numeric positions and stacked ``y``

    Raises:
        ValueError: If ``y`` is missing or contains NA values, or if label
            positions cannot be placed
    """
    if "y" not in data.columns or data["y"].isna().any():
        raise ValueError("The 'y' column is missing or contains NA values.")

    missing = [f for f in REQUIRED_FIELDS if f not in data.columns]
    if missing:
        raise ValueError(f"Annotation data is missing required fields: {missing}")

    out = coerce_x(data, x_levels)
    out["y"] = pd.to_numeric(out["y"]).astype(float)

    if len(out) > 0:
        step = step_increase or 0.0
        offset = y_offset or 0.0
        out = out.sort_values("y", kind="mergesort")
        rank = out.groupby(["xmin", "xmax"], sort=False).cumcount()
        out["y"] = out["y"] + rank * step + offset

    return out.reset_index(drop=True)


def build_primitives(data: pd.DataFrame, style: Optional[SignifStyle] = None) -> List[Union[Segment, Label]]:
    """Turn laid-out records into segments and labels.

    Per-row style columns (``colour``, ``linewidth``, ...) override ``style``.
    """
    style = style or SignifStyle()
    primitives: List[Union[Segment, Label]] = []

    for _, row in data.iterrows():
        colour = row.get("colour", style.colour)
        linewidth = row.get("linewidth", style.linewidth)
        linetype = row.get("linetype", style.linetype)
        alpha = row.get("alpha", style.alpha)
        textsize = row.get("textsize", style.textsize)

        primitives.append(
            Segment(
                x0=float(row["xmin"]),
                x1=float(row["xmax"]),
                y=float(row["y"]),
                colour=colour,
                linewidth=float(linewidth) * PT,
                linestyle=LINETYPES[linetype],
                alpha=float(alpha),
            )
        )
        primitives.append(
            Label(
                x=(float(row["xmin"]) + float(row["xmax"])) / 2,
                y=float(row["y"]),
                text=str(row["annotation"]),
                colour=colour,
                fontsize=float(textsize) * PT,
                alpha=float(alpha),
            )
        )

    return primitives


def render(primitives: Sequence[Union[Segment, Label]], renderer: SignifRenderer) -> None:
    """Send each primitive to the renderer."""
    for primitive in primitives:
        if isinstance(primitive, Segment):
            renderer.draw_segment(primitive)
        else:
            renderer.draw_label(primitive)


def geom_signif(
    data: pd.DataFrame,
    ax: Optional[plt.Axes] = None,
    mapping: Optional[Dict[str, str]] = None,
    x_levels: Optional[Union[Sequence, Mapping]] = None,
    y_offset: float = 0.0,
    step_increase: float = 0.0,
    renderer: Optional[SignifRenderer] = None,
    **style,
) -> List[Union[Segment, Label]]:
    """Add significance brackets to a plot.

    Args:
        data: Annotation table; by default reads ``y_position``, ``xmin``,
            ``xmax`` and ``p_adj_signif``
        ax: Target axes (default: current axes); ignored when ``renderer`` is given
        mapping: Field -> column overrides, e.g. ``{"annotation": "sig"}``
        x_levels: Category order on the x axis, used to place label positions;
            read from the axes tick labels when omitted
        y_offset: Height added to every bracket
        step_increase: Extra height per stacked bracket sharing a span
        renderer: Custom drawing backend
        **style: ``SignifStyle`` fields (colour, linewidth, linetype, alpha, textsize)

    Returns:
        The primitives that were drawn

    Example:
        >>> fig, ax = plt.subplots()
        >>> sns.boxplot(data=df, x="fertiliser", y="height", order=levels, ax=ax)
        >>> geom_signif(stats, ax=ax, x_levels=levels, step_increase=0.5)
    """
    if renderer is None:
        renderer = MatplotlibRenderer(ax if ax is not None else plt.gca())
    if x_levels is None and isinstance(renderer, MatplotlibRenderer):
        x_levels = axis_levels(renderer.ax)

    records = apply_mapping(data, mapping)
    laid_out = setup_annotation_data(
        records, x_levels=x_levels, step_increase=step_increase, y_offset=y_offset
    )
    primitives = build_primitives(laid_out, SignifStyle(**style))

    render(primitives, renderer)
    logger.debug(f"Drew {len(laid_out)} significance bracket(s)")
    return primitives
