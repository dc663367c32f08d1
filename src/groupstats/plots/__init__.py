"""Significance-bracket plotting."""

from groupstats.plots.boxplot import choose_colors, signif_boxplot
from groupstats.plots.signif import (
    Label,
    MatplotlibRenderer,
    Segment,
    SignifRenderer,
    SignifStyle,
    geom_signif,
    setup_annotation_data,
)

__all__ = [
    "geom_signif",
    "setup_annotation_data",
    "SignifStyle",
    "SignifRenderer",
    "MatplotlibRenderer",
    "Segment",
    "Label",
    "signif_boxplot",
    "choose_colors",
]
