"""Highlighting: turn an alignment into a diff table with change tags.

The diff table keeps its tags structurally (per cell, row and column) and can
be flattened with :meth:`DiffTable.to_table` into the familiar highlighter
layout::

    !    |      | +++
    @@   | id   | phone
    +++  | 3    | 555-0100
    ->   | 1    | 555-0199->555-0111
    ---  | 2    |
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from .align import Alignment, Alignment3, Unit, Unit3
from .merge import resolve_cell
from .models import CompareFlags
from .table import Table

logger = logging.getLogger(__name__)

HEADER_MARKER = "@@"
SCHEMA_MARKER = "!"
GAP_MARKER = "..."


class CellTag(str, Enum):
    """Change classification of a cell, row or column."""

    UNCHANGED = "unchanged"
    INSERTED = "inserted"
    DELETED = "deleted"
    MODIFIED = "modified"
    CONFLICT = "conflict"


ROW_MARKERS = {
    CellTag.UNCHANGED: "",
    CellTag.INSERTED: "+++",
    CellTag.DELETED: "---",
}

SCHEMA_MARKERS = {
    CellTag.INSERTED: "+++",
    CellTag.DELETED: "---",
}


def arrow_for(*values: str) -> str:
    """Return the shortest ``->`` arrow (``-->``, ``--->``...) absent from all values."""
    arrow = "->"
    while any(arrow in v for v in values):
        arrow = "-" + arrow
    return arrow


@dataclass(frozen=True)
class DiffCell:
    """A highlighted cell.

    Attributes:
        value: Displayed text (composite "old->new" when modified)
        tag: Change classification
        old: Value in the left-hand/local table (None if absent)
        new: Value in the right-hand/remote table (None if absent)
        ancestor: Ancestor value for 3-way diffs (None if absent)
    """

    value: str
    tag: CellTag
    old: str | None = None
    new: str | None = None
    ancestor: str | None = None


@dataclass
class DiffColumn:
    name: str
    tag: CellTag


@dataclass
class DiffRow:
    """A highlighted row; ``gap`` rows stand in for a run of skipped rows."""

    tag: CellTag
    cells: list[DiffCell]
    old: int | None = None
    new: int | None = None
    ancestor: int | None = None
    gap: bool = False

    @property
    def marker(self) -> str:
        """Action-column marker for this row."""
        if self.gap:
            return GAP_MARKER
        if self.tag in ROW_MARKERS:
            return ROW_MARKERS[self.tag]
        values = [v for cell in self.cells for v in (cell.old, cell.new, cell.ancestor) if v]
        return arrow_for(*values)


@dataclass
class DiffTable:
    """Result of highlighting an alignment."""

    columns: list[DiffColumn]
    rows: list[DiffRow]
    flags: CompareFlags = field(default_factory=CompareFlags)
    three_way: bool = False
    skipped_rows: int = 0
    skipped_columns: int = 0

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def content_rows(self) -> list[DiffRow]:
        return [r for r in self.rows if not r.gap]

    def schema_changed(self) -> bool:
        return any(c.tag in SCHEMA_MARKERS for c in self.columns)

    def has_changes(self) -> bool:
        """True if any row or column is anything other than unchanged."""
        return any(r.tag != CellTag.UNCHANGED for r in self.content_rows()) or any(
            c.tag != CellTag.UNCHANGED for c in self.columns
        )

    def summary(self) -> dict[str, dict[str, int]]:
        """Count displayed rows and columns per tag."""
        rows = {tag.value: 0 for tag in CellTag}
        for row in self.content_rows():
            rows[row.tag.value] += 1
        columns = {tag.value: 0 for tag in CellTag}
        for column in self.columns:
            columns[column.tag.value] += 1
        return {"rows": rows, "columns": columns}

    def grid(self) -> list[list[str]]:
        """Flatten into the highlighter layout (marker column first)."""
        grid: list[list[str]] = []
        if self.schema_changed() or self.flags.show_unchanged_meta:
            grid.append([SCHEMA_MARKER] + [SCHEMA_MARKERS.get(c.tag, "") for c in self.columns])
        grid.append([HEADER_MARKER] + self.column_names())
        for row in self.rows:
            if row.gap:
                grid.append([GAP_MARKER] * (len(self.columns) + 1))
            else:
                grid.append([row.marker] + [cell.value for cell in row.cells])
        return grid

    def to_table(self) -> Table:
        """Return :meth:`grid` as a Table (its first grid row becomes the header)."""
        return Table.from_rows(self.grid())


def _text(table: Table, row: int | None, col: int | None) -> str | None:
    if row is None or col is None:
        return None
    return table.text(row, col)


def _shows_change(cell: DiffCell) -> bool:
    """True for a modified cell, or a non-empty cell under an inserted/deleted column."""
    if cell.tag in (CellTag.INSERTED, CellTag.DELETED):
        return bool(cell.value)
    return cell.tag == CellTag.MODIFIED


def _cell2(a: Table, b: Table, row: Unit, col: Unit) -> DiffCell:
    old = _text(a, row.a, col.a)
    new = _text(b, row.b, col.b)

    if row.b is None or col.b is None:
        return DiffCell(old or "", CellTag.DELETED, old, new)
    if row.a is None or col.a is None:
        return DiffCell(new or "", CellTag.INSERTED, old, new)
    if old == new:
        return DiffCell(new, CellTag.UNCHANGED, old, new)
    return DiffCell(f"{old}{arrow_for(old, new)}{new}", CellTag.MODIFIED, old, new)


def _diff2(alignment: Alignment) -> tuple[list[DiffColumn], list[DiffRow]]:
    a, b = alignment.a, alignment.b
    column_units = alignment.column_units()
    rows: list[DiffRow] = []
    modified_columns: set[int] = set()

    for unit in alignment.row_units():
        cells = [_cell2(a, b, unit, col) for col in column_units]
        if unit.a is None:
            tag = CellTag.INSERTED
        elif unit.b is None:
            tag = CellTag.DELETED
        else:
            modified_columns.update(
                k for k, cell in enumerate(cells) if cell.tag == CellTag.MODIFIED
            )
            tag = CellTag.MODIFIED if any(map(_shows_change, cells)) else CellTag.UNCHANGED
        rows.append(DiffRow(tag, cells, old=unit.a, new=unit.b))

    columns = []
    for k, unit in enumerate(column_units):
        if unit.a is None:
            tag = CellTag.INSERTED
        elif unit.b is None:
            tag = CellTag.DELETED
        elif k in modified_columns:
            tag = CellTag.MODIFIED
        else:
            tag = CellTag.UNCHANGED
        name = b.column_names()[unit.b] if unit.b is not None else a.column_names()[unit.a]
        columns.append(DiffColumn(name, tag))
    return columns, rows


def _cell3(alignment: Alignment3, row: Unit3, col: Unit3) -> DiffCell:
    ancestor = _text(alignment.ancestor, row.ancestor, col.ancestor)
    local = _text(alignment.local, row.local, col.local)
    remote = _text(alignment.remote, row.remote, col.remote)
    value, conflict = resolve_cell(ancestor, local, remote)

    if conflict:
        shown = f"((({ancestor or ''}))){local or ''}///{remote or ''}"
        return DiffCell(shown, CellTag.CONFLICT, local, remote, ancestor)
    if value == ancestor:
        return DiffCell(value or "", CellTag.UNCHANGED, local, remote, ancestor)
    if ancestor is None:
        return DiffCell(value, CellTag.INSERTED, local, remote, ancestor)
    if value is None:
        return DiffCell(ancestor, CellTag.DELETED, local, remote, ancestor)
    return DiffCell(
        f"{ancestor}{arrow_for(ancestor, value)}{value}", CellTag.MODIFIED, local, remote, ancestor
    )


def _unit3_tag(unit: Unit3, cells: list[DiffCell]) -> CellTag:
    if any(cell.tag == CellTag.CONFLICT for cell in cells):
        return CellTag.CONFLICT
    if unit.ancestor is None:
        return CellTag.INSERTED
    if unit.local is None or unit.remote is None:
        return CellTag.DELETED
    if any(map(_shows_change, cells)):
        return CellTag.MODIFIED
    return CellTag.UNCHANGED


def _diff3(alignment: Alignment3) -> tuple[list[DiffColumn], list[DiffRow]]:
    column_units = alignment.column_units()
    rows: list[DiffRow] = []
    by_column: list[list[DiffCell]] = [[] for _ in column_units]

    for unit in alignment.row_units():
        cells = [_cell3(alignment, unit, col) for col in column_units]
        for k, cell in enumerate(cells):
            if unit.ancestor is not None and unit.local is not None and unit.remote is not None:
                by_column[k].append(cell)
            elif cell.tag == CellTag.CONFLICT:
                by_column[k].append(cell)
        rows.append(
            DiffRow(
                _unit3_tag(unit, cells),
                cells,
                old=unit.local,
                new=unit.remote,
                ancestor=unit.ancestor,
            )
        )

    columns = []
    for k, unit in enumerate(column_units):
        if unit.local is not None:
            name = alignment.local.column_names()[unit.local]
        elif unit.remote is not None:
            name = alignment.remote.column_names()[unit.remote]
        else:
            name = alignment.ancestor.column_names()[unit.ancestor]
        columns.append(DiffColumn(name, _unit3_tag(unit, by_column[k])))
    return columns, rows


def _keep_with_context(changed: list[bool], context: int) -> list[bool]:
    keep = list(changed)
    for i, flag in enumerate(changed):
        if flag:
            for j in range(max(0, i - context), min(len(changed), i + context + 1)):
                keep[j] = True
    return keep


def _filter_columns(
    columns: list[DiffColumn], rows: list[DiffRow], flags: CompareFlags
) -> tuple[list[DiffColumn], list[DiffRow], int]:
    if flags.show_unchanged_columns:
        return columns, rows, 0

    changed = [
        column.tag != CellTag.UNCHANGED
        or any(row.cells[k].tag != CellTag.UNCHANGED for row in rows if not row.gap)
        for k, column in enumerate(columns)
    ]
    keep = _keep_with_context(changed, flags.unchanged_column_context)
    indices = [k for k, flag in enumerate(keep) if flag]

    filtered_rows = [
        DiffRow(
            row.tag,
            [] if row.gap else [row.cells[k] for k in indices],
            row.old,
            row.new,
            row.ancestor,
            row.gap,
        )
        for row in rows
    ]
    return [columns[k] for k in indices], filtered_rows, len(columns) - len(indices)


def _filter_rows(rows: list[DiffRow], flags: CompareFlags) -> tuple[list[DiffRow], int]:
    if flags.show_unchanged:
        return rows, 0

    changed = [row.tag != CellTag.UNCHANGED for row in rows]
    keep = _keep_with_context(changed, flags.unchanged_context)

    filtered: list[DiffRow] = []
    skipped = 0
    in_gap = False
    for row, flag in zip(rows, keep):
        if flag:
            filtered.append(row)
            in_gap = False
            continue
        skipped += 1
        if flags.unchanged_context > 0 and not in_gap:
            filtered.append(DiffRow(CellTag.UNCHANGED, [], gap=True))
            in_gap = True
    return filtered, skipped


def diff(alignment: Alignment | Alignment3, flags: CompareFlags | None = None) -> DiffTable:
    """Highlight an alignment.

    Args:
        alignment: 2-way alignment (old -> new) or 3-way alignment. The 3-way
            diff shows each cell's change from the ancestor to the merge
            outcome, with conflicts as ``(((ancestor)))local///remote``.
        flags: Display options; filtering never changes the alignment

    Returns:
        DiffTable with per-cell, per-row and per-column tags
    """
    flags = flags or CompareFlags()
    three_way = isinstance(alignment, Alignment3)
    columns, rows = _diff3(alignment) if three_way else _diff2(alignment)

    rows, skipped_rows = _filter_rows(rows, flags)
    columns, rows, skipped_columns = _filter_columns(columns, rows, flags)
    # Gap rows carry no cells until the final width is known
    for row in rows:
        if row.gap:
            row.cells = [DiffCell(GAP_MARKER, CellTag.UNCHANGED) for _ in columns]

    logger.debug(
        "Highlighted %d rows (%d skipped), %d columns (%d skipped)",
        len(rows),
        skipped_rows,
        len(columns),
        skipped_columns,
    )
    return DiffTable(columns, rows, flags, three_way, skipped_rows, skipped_columns)
