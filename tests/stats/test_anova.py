"""Tests for grouped one-way ANOVA."""

import pytest
import pandas as pd
import numpy as np

from groupstats.errors import ColumnNotFoundError, EmptyResultError
from groupstats.stats.anova import (
    NOTE_INSUFFICIENT_LEVELS,
    fit_grouped_anova,
    is_fitted,
    model_frame,
    significant_mask,
)


def test_one_row_per_group(plant_data):
    """Test every grouping key yields exactly one row."""
    result = fit_grouped_anova(plant_data, "height", "fertiliser", groups=["site"])

    assert result["site"].tolist() == ["A", "B", "C"]
    assert len(result) == plant_data["site"].nunique()


def test_placeholder_row_has_no_statistics(plant_data):
    """Test a single-level group gets only the note."""
    result = fit_grouped_anova(plant_data, "height", "fertiliser", groups=["site"])
    row = result.set_index("site").loc["C"]

    assert row["note"] == NOTE_INSUFFICIENT_LEVELS
    for col in ["df", "sumsq", "meansq", "statistic", "p_value"]:
        assert pd.isna(row[col])
    assert not is_fitted(row["anova_model"])


def test_anova_statistics(plant_data):
    """Test F-test values for the significant and null groups."""
    result = fit_grouped_anova(plant_data, "height", "fertiliser", groups=["site"]).set_index("site")

    assert result.loc["A", "term"] == "fertiliser"
    assert result.loc["A", "df"] == 2
    assert result.loc["A", "df_residual"] == 12
    assert result.loc["A", "p_value"] < 0.001

    assert result.loc["B", "df"] == 1
    assert result.loc["B", "statistic"] == pytest.approx(0.0, abs=1e-10)
    assert result.loc["B", "p_value"] == pytest.approx(1.0)


def test_anova_matches_scipy(random_data):
    """Test the F statistic agrees with scipy's one-way ANOVA."""
    from scipy import stats as sp_stats

    result = fit_grouped_anova(random_data, "height", "fertiliser", groups=["site"])

    for _, row in result.iterrows():
        part = random_data[random_data["site"] == row["site"]]
        samples = [g["height"].values for _, g in part.groupby("fertiliser")]
        f, p = sp_stats.f_oneway(*samples)
        assert row["statistic"] == pytest.approx(f)
        assert row["p_value"] == pytest.approx(p)


def test_ungrouped_anova(random_data):
    """Test an empty grouping list fits a single model."""
    result = fit_grouped_anova(random_data, "height", "fertiliser")

    assert len(result) == 1
    assert list(result.columns[:2]) == ["term", "df"]


def test_model_frame_keeps_grouping_columns(plant_data):
    """Test the model data keeps the grouping key."""
    result = fit_grouped_anova(plant_data, "height", "fertiliser", groups=["site"])
    frame = model_frame(result.loc[0, "anova_model"], "height", "fertiliser")

    assert set(frame["site"]) == {"A"}
    assert len(frame) == 15


def test_missing_column_raises(plant_data):
    """Test absent columns fail with the missing names."""
    with pytest.raises(ColumnNotFoundError) as excinfo:
        fit_grouped_anova(plant_data, "weight", "fertiliser", groups=["site", "block"])

    assert set(excinfo.value.missing) == {"weight", "block"}


def test_non_numeric_response_raises(plant_data):
    """Test a text response is rejected."""
    with pytest.raises(ValueError, match="must be numeric"):
        fit_grouped_anova(plant_data, "fertiliser", "site")


def test_empty_table_raises():
    """Test an empty table produces no result."""
    df = pd.DataFrame(
        {
            "site": pd.Series(dtype=object),
            "fertiliser": pd.Series(dtype=object),
            "height": pd.Series(dtype=float),
        }
    )
    with pytest.raises(EmptyResultError):
        fit_grouped_anova(df, "height", "fertiliser", groups=["site"])


def test_significant_mask_treats_nan_as_false():
    """Test NaN p-values are never significant."""
    table = pd.DataFrame({"p_value": [0.01, np.nan, 0.05, 0.2]})
    assert significant_mask(table).tolist() == [True, False, False, False]


def test_significant_mask_without_p_value():
    """Test a table of placeholders has no significant rows."""
    table = pd.DataFrame({"note": [NOTE_INSUFFICIENT_LEVELS]})
    assert significant_mask(table).tolist() == [False]
