"""Tests for significance-bracket layout and rendering."""

from __future__ import annotations

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from groupstats.plots.signif import (
    PT,
    Label,
    Segment,
    SignifRenderer,
    apply_mapping,
    build_primitives,
    geom_signif,
    setup_annotation_data,
)
from groupstats.plots.boxplot import choose_colors, signif_boxplot


class RecordingRenderer(SignifRenderer):
    """Collects primitives instead of drawing them."""

    def __init__(self):
        self.segments = []
        self.labels = []

    def draw_segment(self, segment):
        self.segments.append(segment)

    def draw_label(self, label):
        self.labels.append(label)


@pytest.fixture
def stacked_records():
    return pd.DataFrame(
        {
            "xmin": [1, 1, 1],
            "xmax": [2, 2, 2],
            "y": [5.0, 3.0, 4.0],
            "annotation": ["a", "b", "c"],
        }
    )


class TestSetupAnnotationData:
    """Tests for stacking and validation."""

    def test_stacking_same_span(self, stacked_records):
        """Test brackets sharing a span are raised by rank * step."""
        out = setup_annotation_data(stacked_records, step_increase=0.5)

        assert out["annotation"].tolist() == ["b", "c", "a"]
        assert out["y"].tolist() == pytest.approx([3.0, 4.5, 6.0])

    def test_offset_added_to_every_record(self, stacked_records):
        """Test y_offset shifts all brackets."""
        out = setup_annotation_data(stacked_records, step_increase=0.5, y_offset=1.0)
        assert out["y"].tolist() == pytest.approx([4.0, 5.5, 7.0])

    def test_ranks_are_per_span(self):
        """Test different spans stack independently."""
        records = pd.DataFrame(
            {
                "xmin": [0, 0, 1],
                "xmax": [1, 1, 2],
                "y": [2.0, 1.0, 1.5],
                "annotation": ["*", "**", "ns"],
            }
        )
        out = setup_annotation_data(records, step_increase=1.0)

        assert out["y"].tolist() == pytest.approx([1.0, 1.5, 3.0])

    def test_no_step_keeps_heights(self, stacked_records):
        """Test missing step and offset leave heights unchanged."""
        out = setup_annotation_data(stacked_records, step_increase=None, y_offset=None)
        assert out["y"].tolist() == pytest.approx([3.0, 4.0, 5.0])

    def test_missing_y_raises(self, stacked_records):
        """Test NA heights are rejected."""
        records = stacked_records.copy()
        records.loc[0, "y"] = None
        with pytest.raises(ValueError, match="The 'y' column is missing or contains NA values."):
            setup_annotation_data(records)

    def test_absent_y_raises(self, stacked_records):
        """Test a missing height column is rejected."""
        with pytest.raises(ValueError, match="missing or contains NA"):
            setup_annotation_data(stacked_records.drop(columns=["y"]))

    def test_labels_map_to_positions(self):
        """Test category labels become 0-based positions along x_levels."""
        records = pd.DataFrame(
            {"xmin": ["ctrl", "ctrl"], "xmax": ["fert1", "fert2"], "y": [1.0, 2.0], "annotation": ["*", "**"]}
        )
        out = setup_annotation_data(records, x_levels=["ctrl", "fert1", "fert2"])

        assert out["xmin"].tolist() == [0.0, 0.0]
        assert out["xmax"].tolist() == [1.0, 2.0]

    def test_unknown_label_raises(self):
        """Test labels outside x_levels are rejected."""
        records = pd.DataFrame({"xmin": ["a"], "xmax": ["z"], "y": [1.0], "annotation": ["*"]})
        with pytest.raises(ValueError, match="not found in x_levels"):
            setup_annotation_data(records, x_levels=["a", "b"])

    def test_numeric_positions_ignore_x_levels(self):
        """Test numeric positions pass through even when x_levels is given."""
        records = pd.DataFrame({"xmin": [0, 1], "xmax": [2, 2], "y": [1.0, 2.0], "annotation": ["*", "ns"]})
        out = setup_annotation_data(records, x_levels=["ctrl", "fert1", "fert2"])

        assert out["xmin"].tolist() == [0.0, 1.0]
        assert out["xmax"].tolist() == [2.0, 2.0]

    def test_labels_without_order_raise(self):
        """Test plain labels need x_levels rather than a guessed order."""
        records = pd.DataFrame({"xmin": ["A"], "xmax": ["C"], "y": [1.0], "annotation": ["*"]})
        with pytest.raises(ValueError, match="x_levels"):
            setup_annotation_data(records)

    def test_labels_follow_given_order(self):
        """Test labels are placed along x_levels, not alphabetically."""
        records = pd.DataFrame({"xmin": ["ctrl"], "xmax": ["A"], "y": [1.0], "annotation": ["*"]})
        out = setup_annotation_data(records, x_levels=["ctrl", "B", "A"])

        assert out["xmax"].tolist() == [2.0]

    def test_categorical_labels_use_category_order(self):
        """Test categorical columns are placed along their categories."""
        order = pd.CategoricalDtype(["ctrl", "B", "A"])
        records = pd.DataFrame(
            {
                "xmin": pd.Series(["ctrl"], dtype=order),
                "xmax": pd.Series(["A"], dtype=order),
                "y": [1.0],
                "annotation": ["*"],
            }
        )
        out = setup_annotation_data(records)

        assert out["xmax"].tolist() == [2.0]

    def test_empty_records(self):
        """Test no records produce no layout rows."""
        records = pd.DataFrame({"xmin": [], "xmax": [], "y": [], "annotation": []})
        assert setup_annotation_data(records).empty


class TestPrimitives:
    """Tests for primitive construction."""

    def test_segment_and_label_per_record(self, stacked_records):
        """Test each record gives one segment and one centred label."""
        laid_out = setup_annotation_data(stacked_records)
        primitives = build_primitives(laid_out)

        segments = [p for p in primitives if isinstance(p, Segment)]
        labels = [p for p in primitives if isinstance(p, Label)]
        assert len(segments) == 3
        assert len(labels) == 3
        assert all(lbl.x == 1.5 for lbl in labels)
        assert segments[0].linewidth == pytest.approx(0.5 * PT)
        assert labels[0].fontsize == pytest.approx(3.88 * PT)

    def test_row_style_overrides(self, stacked_records):
        """Test per-row colour overrides the default."""
        records = stacked_records.assign(colour=["red", "blue", "green"])
        primitives = build_primitives(setup_annotation_data(records))

        assert [p.colour for p in primitives if isinstance(p, Segment)] == ["blue", "green", "red"]

    def test_invalid_linetype(self, stacked_records):
        """Test unknown line types are rejected."""
        with pytest.raises(ValueError, match="linetype"):
            geom_signif(
                stacked_records.rename(columns={"y": "y_position", "annotation": "p_adj_signif"}),
                renderer=RecordingRenderer(),
                linetype="wavy",
            )


class TestGeomSignif:
    """Tests for the public entry point."""

    def test_default_mapping(self):
        """Test post-hoc style columns are read by default."""
        stats = pd.DataFrame(
            {"xmin": [0, 1], "xmax": [1, 2], "y_position": [10.0, 12.0], "p_adj_signif": ["*", "ns"]}
        )
        renderer = RecordingRenderer()
        geom_signif(stats, renderer=renderer)

        assert [s.y for s in renderer.segments] == [10.0, 12.0]
        assert [lbl.text for lbl in renderer.labels] == ["*", "ns"]

    def test_custom_mapping(self):
        """Test fields can be read from other columns."""
        stats = pd.DataFrame({"group1": [0], "group2": [2], "height": [3.0], "sig": ["***"]})
        mapped = apply_mapping(stats, {"xmin": "group1", "xmax": "group2", "y": "height", "annotation": "sig"})

        assert list(mapped.columns) == ["y", "xmin", "xmax", "annotation"]

        renderer = RecordingRenderer()
        geom_signif(
            stats,
            mapping={"xmin": "group1", "xmax": "group2", "y": "height", "annotation": "sig"},
            renderer=renderer,
        )
        assert renderer.labels[0].x == 1.0
        assert renderer.labels[0].text == "***"

    def test_labels_read_from_axes(self):
        """Test label positions come from the axes tick labels."""
        stats = pd.DataFrame({"xmin": ["ctrl"], "xmax": ["A"], "y_position": [4.0], "p_adj_signif": ["*"]})
        fig, ax = plt.subplots()
        try:
            ax.bar(["ctrl", "B", "A"], [1.0, 2.0, 3.0])
            primitives = geom_signif(stats, ax=ax)

            segment = next(p for p in primitives if isinstance(p, Segment))
            assert (segment.x0, segment.x1) == (0.0, 2.0)
        finally:
            plt.close(fig)

    def test_draws_on_matplotlib_axes(self):
        """Test the matplotlib adapter adds one line and one text per bracket."""
        stats = pd.DataFrame(
            {"xmin": [0, 0], "xmax": [1, 1], "y_position": [1.0, 1.0], "p_adj_signif": ["*", "**"]}
        )
        fig, ax = plt.subplots()
        try:
            geom_signif(stats, ax=ax, step_increase=0.2)

            assert len(ax.lines) == 2
            assert sorted(t.get_text() for t in ax.texts) == ["*", "**"]
            heights = sorted(line.get_ydata()[0] for line in ax.lines)
            assert heights == pytest.approx([1.0, 1.2])
        finally:
            plt.close(fig)


def test_choose_colors_extends_past_base_palette():
    """Test more than four levels get distinct colours."""
    colors = choose_colors(["a", "b", "c", "d", "e", "f"])

    assert len(colors) == 6
    assert colors["a"] != colors["e"]


def test_signif_boxplot(plant_data):
    """Test the bracketed boxplot draws every bracket."""
    site_a = plant_data[plant_data["site"] == "A"]
    annotations = pd.DataFrame(
        {
            "xmin": ["ctrl", "ctrl", "fert1"],
            "xmax": ["fert1", "fert2", "fert2"],
            "y_position": [33.0, 33.0, 35.0],
            "p_adj_signif": ["****", "****", "***"],
        }
    )
    fig = signif_boxplot(site_a, "fertiliser", "height", annotations, step_increase=1.5)
    try:
        ax = fig.axes[0]
        labels = [t.get_text() for t in ax.texts]
        assert labels.count("****") == 2
        assert "***" in labels
    finally:
        plt.close(fig)


def test_signif_boxplot_numeric_positions(plant_data):
    """Test brackets given as 0-based positions are drawn on the boxplot."""
    site_a = plant_data[plant_data["site"] == "A"]
    annotations = pd.DataFrame({"xmin": [0], "xmax": [1], "y_position": [33.0], "p_adj_signif": ["*"]})
    fig = signif_boxplot(site_a, "fertiliser", "height", annotations)
    try:
        ax = fig.axes[0]
        assert [t.get_text() for t in ax.texts] == ["*"]
        bracket = ax.lines[-1]
        assert list(bracket.get_xdata()) == [0.0, 1.0]
    finally:
        plt.close(fig)
