"""Column validation for observation tables."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import pandas as pd
from pandas.api.types import is_numeric_dtype

from groupstats.errors import ColumnNotFoundError

logger = logging.getLogger(__name__)


def validate_columns(
    df: pd.DataFrame,
    response: Optional[str] = None,
    treatment: Optional[str] = None,
    groups: Optional[Sequence[str]] = None,
) -> List[str]:
    """
    Validate that the requested columns exist in a DataFrame.

    Parameters
    ----------
    df : pd.DataFrame
        Observation table
    response : str, optional
        Response column name
    treatment : str, optional
        Treatment column name
    groups : Sequence[str], optional
        Grouping column names

    Returns
    -------
    List[str]
        Every column that was checked, in response/treatment/groups order

    Raises
    ------
    ColumnNotFoundError
        If any requested column is missing
    """
    errors = []
    missing = []
    available = set(df.columns)

    if response is not None and response not in available:
        errors.append(f"Response column '{response}' not found. Available: {sorted(map(str, available))[:10]}...")
        missing.append(response)

    if treatment is not None and treatment not in available:
        errors.append(f"Treatment column '{treatment}' not found. Available: {sorted(map(str, available))[:10]}...")
        missing.append(treatment)

    if groups:
        absent = [g for g in groups if g not in available]
        if absent:
            errors.append(f"Grouping columns not found: {absent[:10]}")
            missing.extend(absent)

    if errors:
        raise ColumnNotFoundError("\n".join(errors), missing=missing)

    checked = [c for c in (response, treatment) if c is not None]
    return checked + list(groups or [])


def validate_response(df: pd.DataFrame, response: str) -> None:
    """Ensure the response column is numeric.

    Raises:
        ValueError: If the response column holds non-numeric values
    """
    if not is_numeric_dtype(df[response]):
        raise ValueError(
            f"Response column '{response}' must be numeric, got dtype {df[response].dtype}"
        )
    n_missing = int(df[response].isna().sum())
    if n_missing:
        logger.warning(f"Response column '{response}' has {n_missing} missing values; they are ignored")
