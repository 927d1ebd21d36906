"""Deterministic CSV I/O for git-friendly table exports."""

import csv
import hashlib
import logging

import pandas as pd

from .table import ShapeError, Table

logger = logging.getLogger(__name__)


def read_csv_table(path: str) -> Table:
    """Read a CSV file (header row first) into a Table.

    All cells are read as strings; empty fields stay empty rather than
    becoming NaN. Short rows are padded with empty cells. The header is parsed
    as an ordinary row, so its field count fixes the table width and
    duplicate column names are kept as written.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ShapeError: If a row has more fields than the header
    """
    try:
        df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        # Empty CSV file is a valid table with no columns and no rows
        logger.debug(f"Empty CSV file: {path}")
        return Table([], [])
    except pd.errors.ParserError as e:
        raise ShapeError(f"{path}: {e}") from e

    table = Table.from_rows(Table.from_dataframe(df).rows())
    logger.debug(f"Read {table.row_count()} rows x {table.column_count()} columns from {path}")
    return table


def write_table_csv(table: Table, path: str) -> str:
    """
    Write a Table to CSV with deterministic formatting for stable git diffs.

    Args:
        table: Table to write (row order is preserved)
        path: Output file path

    Returns:
        SHA256 hash of the written file

    Determinism invariants:
        - UTF-8 encoding (no BOM)
        - LF newlines (\\n) on all platforms
        - csv.QUOTE_MINIMAL (only quote when necessary)
        - Empty string for NULL values
    """
    table.to_dataframe().to_csv(
        path,
        index=False,
        encoding="utf-8",
        lineterminator="\n",
        quoting=csv.QUOTE_MINIMAL,
        na_rep="",
    )

    # Compute SHA256 hash
    with open(path, "rb") as f:
        return hashlib.sha256(f.read()).hexdigest()
