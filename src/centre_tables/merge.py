"""Three-way merge of a remote table's changes into a local table."""

import logging

from .align import Alignment3, Unit3, align3
from .models import CompareFlags, ConflictInfo
from .table import CellValue, Table

logger = logging.getLogger(__name__)


def resolve_cell(
    ancestor: str | None, local: str | None, remote: str | None
) -> tuple[str | None, bool]:
    """Apply the cell-level three-way merge rule.

    ``None`` stands for a cell whose row or column is absent on that side.

    Returns:
        Tuple of (resolved value, conflict). On conflict the local value is
        returned unchanged.

    Rules:
        - local == remote: both agree (or neither changed)
        - only remote changed: take remote
        - only local changed: keep local
        - both changed to different values: conflict, keep local
    """
    if local == remote:
        return local, False
    if local == ancestor:
        return remote, False
    if remote == ancestor:
        return local, False
    return local, True


def _value(table: Table, row: int | None, col: int | None) -> str | None:
    if row is None or col is None:
        return None
    return table.text(row, col)


def _raw(table: Table, row: int | None, col: int | None) -> CellValue:
    if row is None or col is None:
        return None
    return table.cell(row, col)


class Merger:
    """Merge remote changes onto a copy of the local table.

    The merger starts in the *created* state; :meth:`apply` computes the
    merge once and moves it to *applied*. Further calls to :meth:`apply`
    return the cached conflict count without re-applying anything.

    Example:
        >>> merger = Merger(ancestor, local, remote)
        >>> if merger.apply() == 0:
        ...     write_table_csv(merger.merged_table(), "merged.csv")
    """

    def __init__(
        self,
        ancestor: Table,
        local: Table,
        remote: Table,
        flags: CompareFlags | None = None,
    ):
        self.ancestor = ancestor
        self.local = local
        self.remote = remote
        self.flags = flags or CompareFlags(ordered=False)
        self._alignment: Alignment3 | None = None
        self._result: Table | None = None
        self._conflicts: list[ConflictInfo] = []

    @property
    def applied(self) -> bool:
        return self._result is not None

    @property
    def alignment(self) -> Alignment3:
        if self._alignment is None:
            self._alignment = align3(self.ancestor, self.local, self.remote, self.flags)
        return self._alignment

    def apply(self) -> int:
        """Merge and return the number of conflicts found."""
        if self._result is not None:
            return len(self._conflicts)

        alignment = self.alignment
        row_units = alignment.row_units()
        column_units = alignment.column_units()
        names = [self._column_name(unit) for unit in column_units]

        # Resolve every cell first; row/column survival depends on conflicts
        resolved: list[list[tuple[CellValue, bool]]] = []
        row_conflict = [False] * len(row_units)
        column_conflict = [False] * len(column_units)
        for r, row in enumerate(row_units):
            cells = []
            for c, col in enumerate(column_units):
                local = _value(self.local, row.local, col.local)
                value, conflict = resolve_cell(
                    _value(self.ancestor, row.ancestor, col.ancestor),
                    local,
                    _value(self.remote, row.remote, col.remote),
                )
                # Comparisons use normalized text; the result keeps raw cells
                if value is None:
                    raw = None
                elif value == local:
                    raw = _raw(self.local, row.local, col.local)
                else:
                    raw = _raw(self.remote, row.remote, col.remote)
                if conflict:
                    row_conflict[r] = True
                    column_conflict[c] = True
                cells.append((raw, conflict))
            resolved.append(cells)

        kept_columns = [
            c for c, unit in enumerate(column_units) if self._survives(unit, column_conflict[c])
        ]

        merged_rows: list[list[CellValue]] = []
        conflicts: list[ConflictInfo] = []
        for r, row in enumerate(row_units):
            keep = self._survives(row, row_conflict[r])
            merged_index = len(merged_rows) if keep else None

            for c, col in enumerate(column_units):
                if resolved[r][c][1]:
                    conflicts.append(self._conflict(merged_index, names[c], row, col))

            if not keep:
                continue

            values = []
            for c in kept_columns:
                value = resolved[r][c][0]
                if value is None:
                    # Surviving cell with no merged value: keep whatever local has
                    value = _raw(self.local, row.local, column_units[c].local)
                    if value is None:
                        value = ""
                values.append(value)
            merged_rows.append(values)

        self._result = Table([names[c] for c in kept_columns], merged_rows)
        self._conflicts = conflicts

        logger.info(
            "Merged %d rows x %d columns with %d conflict(s)",
            len(merged_rows),
            len(kept_columns),
            len(conflicts),
        )
        return len(conflicts)

    def merged_table(self) -> Table:
        """Return the merge result, applying the merge if needed."""
        self.apply()
        return self._result

    def get_conflict_infos(self) -> list[ConflictInfo]:
        """Return conflicts in row then column order, applying the merge if needed."""
        self.apply()
        return list(self._conflicts)

    @staticmethod
    def _survives(unit: Unit3, conflict: bool) -> bool:
        """Decide whether a row/column unit is present in the merge result.

        - Inserted on either side: kept
        - Removed locally: stays removed (local wins, even on conflict)
        - Removed remotely: removed, unless local edits in it conflict
        """
        if unit.ancestor is None:
            return True
        if unit.local is None:
            return False
        if unit.remote is None:
            return conflict
        return True

    def _column_name(self, unit: Unit3) -> str:
        if unit.local is not None:
            return self.local.column_names()[unit.local]
        if unit.remote is not None:
            return self.remote.column_names()[unit.remote]
        return self.ancestor.column_names()[unit.ancestor]

    def _conflict(self, merged_row: int | None, name: str, row: Unit3, col: Unit3) -> ConflictInfo:
        return ConflictInfo(
            row=merged_row,
            column=name,
            ancestor_row=row.ancestor,
            local_row=row.local,
            remote_row=row.remote,
            ancestor_value=_value(self.ancestor, row.ancestor, col.ancestor),
            local_value=_value(self.local, row.local, col.local),
            remote_value=_value(self.remote, row.remote, col.remote),
        )
