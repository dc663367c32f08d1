"""Excel and CSV export of result tables."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Any
import pandas as pd
import xlsxwriter  # noqa: F401  (engine for pd.ExcelWriter)

# Columns holding Python objects that cannot be serialised
OBJECT_COLUMNS = ["anova_model"]

PVALUE_COLUMNS = {
    "p",
    "p_adj",
    "p_value",
    "anova_p_value",
    "ttest__p",
    "ttest__p_adj",
    "tukey_adj_p_value",
    "bonferroni_adj_p_value",
}

DECIMAL_COLUMNS = {
    "statistic",
    "sumsq",
    "meansq",
    "estimate",
    "conf_low",
    "conf_high",
    "ttest__statistic",
    "ttest__df",
    "tukey_estimate",
    "tukey_conf_low",
    "tukey_conf_high",
}


def prepare_for_export(df: pd.DataFrame) -> pd.DataFrame:
    """Drop model objects so a result table can be written to disk."""
    return df.drop(columns=OBJECT_COLUMNS, errors="ignore")


def autosize_column(ws: Any, df: pd.DataFrame, col_idx: int, col_name: str, min_width: int = 12, max_width: int = 50):
    """Set column width based on content.

    Args:
        ws: xlsxwriter worksheet object
        df: DataFrame with data
        col_idx: Column index (0-based)
        col_name: Column name
        min_width: Minimum column width
        max_width: Maximum column width
    """
    header_len = len(str(col_name))
    # missing cells are written blank
    content_len = df[col_name].map(lambda v: 0 if pd.isna(v) else len(str(v))).max() if len(df) > 0 else 0
    width = max(min_width, min(max_width, max(header_len, content_len) + 2))
    ws.set_column(col_idx, col_idx, width)


def create_formats(workbook: Any) -> Dict[str, Any]:
    """Create xlsxwriter format objects."""
    return {
        "pvalue": workbook.add_format({"num_format": "0.00E+00"}),
        "decimal3": workbook.add_format({"num_format": "0.000"}),
        "sig_highlight": workbook.add_format({"bg_color": "#FFEB9C", "font_color": "#9C5700"}),
    }


def write_sheet_with_formatting(
    writer: pd.ExcelWriter,
    df: pd.DataFrame,
    sheet_name: str,
    formats: Dict[str, Any],
):
    """Write a DataFrame to Excel with frozen header, autofilter and number formats.

    Significance-code columns get a highlight on every significant row.
    """
    df.to_excel(writer, sheet_name=sheet_name, index=False)
    ws = writer.sheets[sheet_name]

    ws.freeze_panes(1, 0)

    if len(df.columns) > 0:
        ws.autofilter(0, 0, len(df), len(df.columns) - 1)

    for col_idx, col_name in enumerate(df.columns):
        autosize_column(ws, df, col_idx, col_name)

        if col_name in PVALUE_COLUMNS:
            ws.set_column(col_idx, col_idx, None, formats["pvalue"])
        elif col_name in DECIMAL_COLUMNS:
            ws.set_column(col_idx, col_idx, None, formats["decimal3"])
        elif col_name.endswith("signif") or col_name == "sig":
            if len(df) > 0:
                ws.conditional_format(
                    1,
                    col_idx,
                    len(df),
                    col_idx,
                    {
                        "type": "text",
                        "criteria": "begins with",
                        "value": "*",
                        "format": formats["sig_highlight"],
                    },
                )


def write_results_workbook(outdir: Path, sheets: Dict[str, pd.DataFrame], filename: str) -> Path:
    """Write result tables to a formatted Excel workbook.

    Args:
        outdir: Output directory
        sheets: Mapping of sheet name -> table
        filename: Workbook file name

    Returns:
        Path to created workbook
    """
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    out_xlsx = outdir / filename

    with pd.ExcelWriter(out_xlsx, engine="xlsxwriter") as writer:
        formats = create_formats(writer.book)
        for sheet_name, table in sheets.items():
            write_sheet_with_formatting(writer, prepare_for_export(table), sheet_name, formats)

    return out_xlsx


def write_results_csv(outdir: Path, table: pd.DataFrame, filename: str) -> Path:
    """Write a result table to CSV, dropping model objects."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    out_csv = outdir / filename
    prepare_for_export(table).to_csv(out_csv, index=False)
    return out_csv
