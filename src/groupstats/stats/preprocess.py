"""Partitioning and cell-count helpers shared by the grouped pipelines."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

# Placeholder key used when a table is treated as a single group
_ALL = "__all__"
_ROW = "__row__"


def iter_groups(
    df: pd.DataFrame, groups: Optional[Sequence[str]] = None
) -> Iterator[Tuple[Dict[str, Any], pd.DataFrame]]:
    """Yield ``(key, partition)`` pairs for each grouping key.

    Args:
        df: Input dataframe
        groups: Grouping column names; empty/None yields the whole table once

    Yields:
        Tuple of (dict mapping grouping column -> value, partition dataframe)

    Notes:
        Missing values in grouping columns form their own key.
    """
    groups = list(groups or [])
    if not groups:
        yield {}, df
        return

    for key, part in df.groupby(groups, sort=True, dropna=False, observed=True):
        if not isinstance(key, tuple):
            key = (key,)
        yield dict(zip(groups, key)), part


def treatment_levels(values: pd.Series) -> List[Any]:
    """Ordered distinct non-missing treatment levels.

    Categorical columns keep their category order (observed levels only);
    anything else is sorted.
    """
    values = values.dropna()
    if isinstance(values.dtype, pd.CategoricalDtype):
        observed = set(values.unique())
        return [c for c in values.cat.categories if c in observed]
    return sorted(values.unique().tolist())


def count_cells(df: pd.DataFrame, groups: Sequence[str], treatment: str) -> pd.DataFrame:
    """Count observations per (grouping key, treatment level) cell.

    Rows with a missing treatment are not counted.

    Returns:
        DataFrame with the grouping columns, the treatment column, and ``n``
    """
    by = list(groups) + [treatment]
    counts = (
        df.dropna(subset=[treatment])
        .groupby(by, sort=True, dropna=False, observed=True)
        .size()
        .reset_index(name="n")
    )
    return counts


def drop_sparse_levels(
    df: pd.DataFrame, groups: Sequence[str], treatment: str, min_n: int = 2
) -> pd.DataFrame:
    """Drop rows whose (grouping key, treatment level) cell has fewer than ``min_n`` rows."""
    if df.empty:
        return df
    by = list(groups) + [treatment]
    rows = df.groupby(by, sort=False, dropna=False, observed=True)[treatment].transform("size")
    return df[rows >= min_n]


def key_columns(df: pd.DataFrame, groups: Sequence[str]) -> Tuple[pd.DataFrame, List[str]]:
    """Return ``df`` and the columns to key on, adding a constant key when ungrouped."""
    groups = list(groups)
    if groups:
        return df, groups
    return df.assign(**{_ALL: 0}), [_ALL]


def semi_join(df: pd.DataFrame, keys: pd.DataFrame, groups: Sequence[str]) -> pd.DataFrame:
    """Keep the rows of ``df`` whose grouping key appears in ``keys``.

    Rows are never duplicated, whatever the multiplicity of ``keys``.
    """
    groups = list(groups)
    if keys.empty:
        return df.iloc[0:0]
    if not groups:
        return df

    positions = df[groups].assign(**{_ROW: np.arange(len(df))})
    matched = positions.merge(keys[groups].drop_duplicates(), on=groups, how="inner")
    return df.iloc[np.sort(matched[_ROW].to_numpy())]
