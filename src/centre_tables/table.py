"""Read-only 2-D table view used as input to alignment, highlighting and merging.

A table is a header row of column names plus data rows of equal width. Cell
values may be strings, numbers or empty (``None``); comparisons always go
through :func:`normalize_value` so that ``1``, ``1.0`` and ``" 1 "`` compare
equal.
"""

import logging
import math
from typing import Any, Iterable, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

CellValue = str | int | float | None


class ShapeError(ValueError):
    """Raised when a data row does not have the header's width."""


def cell_text(value: Any) -> str:
    """Render a cell value as written to CSV.

    ``None`` and NaN become the empty string and integral floats render without
    a fractional part (``2.0`` -> ``"2"``). Strings are returned unchanged.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def normalize_value(value: Any) -> str:
    """Normalize a cell value to its comparison string.

    Same as :func:`cell_text` with leading and trailing whitespace stripped.
    """
    return cell_text(value).strip()


class Table:
    """Immutable table of a header plus data rows.

    Use :meth:`build` to construct from parsed CSV rows. The constructor is
    strict: every row must match the header width.
    """

    def __init__(self, header: Sequence[str], rows: Iterable[Sequence[CellValue]] = ()):
        self._header: tuple[str, ...] = tuple("" if h is None else str(h) for h in header)
        width = len(self._header)
        data = []
        for i, row in enumerate(rows):
            row = tuple(row)
            if len(row) != width:
                raise ShapeError(
                    f"Row {i} has {len(row)} cells but the header has {width} columns"
                )
            data.append(row)
        self._rows: tuple[tuple[CellValue, ...], ...] = tuple(data)
        self._index: dict[str, int] = {}
        for i, name in enumerate(self._header):
            self._index.setdefault(name, i)

    @classmethod
    def build(
        cls,
        rows: Iterable[Sequence[CellValue]],
        header: Sequence[str],
        strict: bool = True,
    ) -> "Table":
        """Build a table from data rows and a header row.

        Args:
            rows: Data rows (header excluded)
            header: Column names
            strict: If True, raise ShapeError on any width mismatch. If False,
                short rows are padded with "" and long rows are truncated.

        Returns:
            New Table
        """
        if strict:
            return cls(header, rows)

        width = len(header)
        fitted = []
        for row in rows:
            row = list(row)
            if len(row) < width:
                row.extend([""] * (width - len(row)))
            fitted.append(row[:width])
        return cls(header, fitted)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[CellValue]], strict: bool = True) -> "Table":
        """Build from a 2-D array whose first row is the header."""
        if not rows:
            return cls([], [])
        return cls.build(rows[1:], [str(h) for h in rows[0]], strict=strict)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "Table":
        """Build from a DataFrame; NaN/None cells become empty."""
        header = [str(c) for c in df.columns]
        rows = [
            ["" if pd.isna(v) else v for v in record]
            for record in df.itertuples(index=False, name=None)
        ]
        return cls(header, rows)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a DataFrame of strings (see :func:`cell_text`)."""
        return pd.DataFrame(
            [[cell_text(v) for v in row] for row in self._rows],
            columns=list(self._header),
            dtype=str,
        )

    def column_names(self) -> list[str]:
        return list(self._header)

    def row_count(self) -> int:
        return len(self._rows)

    def column_count(self) -> int:
        return len(self._header)

    def column_index(self, name: str) -> int:
        """Return the index of the first column called ``name``.

        Raises:
            KeyError: If no column has that name
        """
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"No column named {name!r}") from None

    def has_column(self, name: str) -> bool:
        return name in self._index

    def _col(self, col: int | str) -> int:
        return self.column_index(col) if isinstance(col, str) else col

    def cell(self, row: int, col: int | str) -> CellValue:
        """Return the raw value at ``row`` and column index or name ``col``."""
        return self._rows[row][self._col(col)]

    def text(self, row: int, col: int | str) -> str:
        """Return the normalized value at ``row``/``col``."""
        return normalize_value(self.cell(row, col))

    def row(self, row: int) -> tuple[CellValue, ...]:
        return self._rows[row]

    def rows(self) -> list[tuple[CellValue, ...]]:
        return list(self._rows)

    def column(self, col: int | str) -> list[CellValue]:
        index = self._col(col)
        return [row[index] for row in self._rows]

    def to_rows(self) -> list[list[CellValue]]:
        """Return the header followed by the data rows as plain lists."""
        return [list(self._header)] + [list(row) for row in self._rows]

    def rename_columns(self, mapping: dict[str, str]) -> "Table":
        """Return a copy with columns renamed (old name -> new name).

        Names absent from the table are ignored. A rename onto the name of a
        column that is not itself renamed logs a warning; the resulting
        duplicate names are matched k-th to k-th by the aligner.
        """
        header = [mapping.get(name, name) for name in self._header]
        kept = {name for name in self._header if name not in mapping}
        for old, new in mapping.items():
            if old in self._index and new in kept:
                logger.warning(f'Renaming column "{old}" to "{new}" duplicates an existing column')
        return Table(header, self._rows)

    def normalized(self) -> list[list[str]]:
        """Return header plus rows with every cell normalized."""
        return [list(self._header)] + [[normalize_value(v) for v in row] for row in self._rows]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.normalized() == other.normalized()

    def __hash__(self):
        return hash(tuple(tuple(r) for r in self.normalized()))

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"Table(columns={list(self._header)!r}, rows={len(self._rows)})"
