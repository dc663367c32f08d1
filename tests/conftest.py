"""Pytest configuration and fixtures."""

import matplotlib

matplotlib.use("Agg")

import pytest
import numpy as np
import pandas as pd
from pathlib import Path


@pytest.fixture
def plant_data():
    """Three sites: one significant 3-level design, one null 2-level design, one single level."""
    rows = []
    site_a = {
        "ctrl": [10.0, 11.0, 12.0, 10.0, 11.0],
        "fert1": [20.0, 21.0, 19.0, 20.0, 22.0],
        "fert2": [30.0, 31.0, 29.0, 32.0, 30.0],
    }
    # identical samples, F = 0
    site_b = {
        "ctrl": [10.0, 12.0, 11.0, 13.0, 9.0],
        "fert1": [11.0, 10.0, 12.0, 9.0, 13.0],
    }
    site_c = {"ctrl": [14.0, 15.0, 16.0]}

    for site, levels in (("A", site_a), ("B", site_b), ("C", site_c)):
        for fertiliser, heights in levels.items():
            for h in heights:
                rows.append({"site": site, "fertiliser": fertiliser, "height": h})

    return pd.DataFrame(rows)


@pytest.fixture
def null_data():
    """Two sites where no treatment effect exists."""
    rows = []
    for site in ("A", "B"):
        for fertiliser, heights in (
            ("ctrl", [10.0, 12.0, 11.0, 13.0]),
            ("fert1", [11.0, 13.0, 10.0, 12.0]),
        ):
            for h in heights:
                rows.append({"site": site, "fertiliser": fertiliser, "height": h})
    return pd.DataFrame(rows)


@pytest.fixture
def random_data():
    """Random grouped observations with a shifted third level."""
    np.random.seed(42)
    n = 60
    df = pd.DataFrame(
        {
            "site": np.repeat(["north", "south"], n // 2),
            "fertiliser": np.tile(["A", "B", "C"], n // 3),
            "height": np.random.randn(n),
        }
    )
    df.loc[df["fertiliser"] == "C", "height"] += 3.0
    return df


@pytest.fixture
def temp_outdir(tmp_path):
    """Provide temporary output directory."""
    outdir = tmp_path / "derived"
    outdir.mkdir()
    return outdir
