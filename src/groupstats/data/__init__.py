"""
Data loading layer for groupstats.

Supports:
- CSV files (*.csv)
- Single Parquet files (*.parquet)
- Parquet dataset directories (chunked parquet files, optional hive partitioning)

Example usage:
    from groupstats.data import load_table, validate_columns

    df = load_table(Path("plants.csv"))
    validate_columns(df, response="height", treatment="fertiliser", groups=["site"])
"""

from groupstats.data.spec import DataFormat
from groupstats.data.loaders import (
    load_table,
    infer_format,
    validate_parquet_available,
)
from groupstats.data.validation import validate_columns, validate_response

__all__ = [
    "DataFormat",
    "load_table",
    "infer_format",
    "validate_parquet_available",
    "validate_columns",
    "validate_response",
]
