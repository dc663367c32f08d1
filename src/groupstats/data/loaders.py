"""Observation table loading: CSV, Parquet files and Parquet dataset directories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from groupstats.data.spec import DataFormat

logger = logging.getLogger(__name__)


def validate_parquet_available() -> None:
    """Raise ImportError with an install hint when pyarrow is missing."""
    try:
        import pyarrow  # noqa: F401
    except ImportError as e:
        raise ImportError("Parquet input needs pyarrow: pip install groupstats[parquet]") from e


def infer_format(path: Path) -> DataFormat:
    return DataFormat.from_path(path)


def load_table(path: Path, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Load an observation table.

    Args:
        path: A ``.csv`` or ``.parquet`` file, or a directory of parquet files
        columns: Subset of columns to load

    Returns:
        The loaded table

    Raises:
        FileNotFoundError: If ``path`` does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data path not found: {path}")

    fmt = infer_format(path)
    logger.info(f"Loading {fmt.value} table from {path}")

    if fmt == DataFormat.CSV:
        df = pd.read_csv(path, usecols=columns)
    else:
        validate_parquet_available()
        if fmt == DataFormat.PARQUET:
            df = pd.read_parquet(path, columns=columns)
        else:
            df = _load_parquet_dataset(path, columns)

    logger.info(f"Loaded {len(df)} rows, {len(df.columns)} columns")
    return df


def _load_parquet_dataset(path: Path, columns: Optional[List[str]] = None) -> pd.DataFrame:
    import pyarrow.dataset as ds

    dataset = ds.dataset(path, format="parquet")
    if not dataset.files:
        raise ValueError(f"No parquet files found in {path}")
    return dataset.to_table(columns=columns).to_pandas()
