"""Input table formats."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class DataFormat(str, Enum):
    CSV = "csv"
    PARQUET = "parquet"
    PARQUET_DATASET = "parquet_dataset"

    @classmethod
    def from_path(cls, path: Path) -> DataFormat:
        """Directories are parquet datasets; files are told apart by suffix."""
        path = Path(path)
        if path.is_dir():
            return cls.PARQUET_DATASET

        formats = {".csv": cls.CSV, ".parquet": cls.PARQUET}
        try:
            return formats[path.suffix.lower()]
        except KeyError:
            raise ValueError(
                f"Cannot infer data format from path: {path} (expected .csv, .parquet or a directory)"
            ) from None
