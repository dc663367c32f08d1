"""Tests for configuration dataclasses."""

import pytest
from pathlib import Path

from groupstats.config import (
    AnovaConfig,
    PlotConfig,
    PosthocMode,
    TTestConfig,
    resolve_adjust_method,
)


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("site,fertiliser,height\nA,ctrl,1.0\n")
    return path


def test_anova_config_defaults(data_file):
    """Test defaults and coercion."""
    config = AnovaConfig(data_path=str(data_file), response="height", treatment="fertiliser", mode="delegated")

    assert config.data_path == data_file
    assert config.outdir == Path("derived")
    assert config.groups == []
    assert config.mode is PosthocMode.DELEGATED


def test_anova_config_missing_file(tmp_path):
    """Test a missing data file is rejected."""
    with pytest.raises(FileNotFoundError):
        AnovaConfig(data_path=tmp_path / "nope.csv", response="height", treatment="fertiliser")


def test_anova_config_invalid_posthoc(data_file):
    """Test unknown post-hoc families are rejected."""
    with pytest.raises(ValueError, match="posthoc"):
        AnovaConfig(data_path=data_file, response="height", treatment="fertiliser", posthoc="dunn")


def test_anova_config_same_columns(data_file):
    """Test response and treatment must differ."""
    with pytest.raises(ValueError, match="different"):
        AnovaConfig(data_path=data_file, response="height", treatment="height")


def test_ttest_config_variant(data_file):
    """Test only variants 1 and 2 exist."""
    with pytest.raises(ValueError, match="variant"):
        TTestConfig(data_path=data_file, formula="height ~ fertiliser", variant=3)


def test_plot_config_dpi(data_file):
    """Test DPI must be positive."""
    with pytest.raises(ValueError, match="fig_dpi"):
        PlotConfig(data_path=data_file, annotations_path=data_file, x="fertiliser", y="height", fig_dpi=0)


def test_resolve_adjust_method():
    """Test R-style names map onto statsmodels methods."""
    assert resolve_adjust_method("BH") == "fdr_bh"
    assert resolve_adjust_method("none") is None
    with pytest.raises(ValueError):
        resolve_adjust_method("tukey")
