"""Tests for highlighting alignments into diff tables."""

import pytest

from centre_tables.align import align, align3
from centre_tables.highlight import CellTag, arrow_for, diff
from centre_tables.models import CompareFlags
from centre_tables.table import Table


def table(*rows):
    return Table.from_rows([list(r) for r in rows])


@pytest.fixture
def people():
    """Old and new versions of a small people table."""
    old = table(["id", "name"], ["1", "Alice"], ["2", "Bob"])
    new = table(["id", "name"], ["1", "Alicia"], ["2", "Bob"], ["3", "Carol"])
    return old, new


def test_arrow_for_widens_when_values_contain_arrow():
    assert arrow_for("a", "b") == "->"
    assert arrow_for("a->b", "c") == "-->"
    assert arrow_for("x-->y", "z->") == "--->"


def test_diff_grid(people):
    old, new = people

    result = diff(align(old, new))

    assert result.grid() == [
        ["@@", "id", "name"],
        ["->", "1", "Alice->Alicia"],
        ["+++", "3", "Carol"],
    ]
    assert result.skipped_rows == 1
    assert not result.three_way


def test_diff_tags(people):
    old, new = people

    result = diff(align(old, new), CompareFlags(show_unchanged=True))

    assert [row.tag for row in result.rows] == [
        CellTag.MODIFIED,
        CellTag.UNCHANGED,
        CellTag.INSERTED,
    ]
    assert [column.tag for column in result.columns] == [CellTag.UNCHANGED, CellTag.MODIFIED]
    modified = result.rows[0].cells[1]
    assert (modified.old, modified.new) == ("Alice", "Alicia")
    assert result.summary()["rows"]["inserted"] == 1
    assert result.summary()["rows"]["modified"] == 1
    assert result.summary()["rows"]["unchanged"] == 1


def test_deleted_row_keeps_old_values(people):
    old, new = people

    result = diff(align(new, old))

    deleted = [row for row in result.rows if row.tag == CellTag.DELETED]
    assert len(deleted) == 1
    assert deleted[0].marker == "---"
    assert [cell.value for cell in deleted[0].cells] == ["3", "Carol"]


def test_modified_cell_uses_wider_arrow():
    old = table(["id", "note"], ["1", "a->b"])
    new = table(["id", "note"], ["1", "c"])

    result = diff(align(old, new))

    assert result.grid()[1] == ["-->", "1", "a->b-->c"]


def test_identical_tables_have_no_changes(people):
    old, _ = people

    result = diff(align(old, old))

    assert not result.has_changes()
    assert result.grid() == [["@@", "id", "name"]]


def test_reordered_rows_only_change_when_ordered():
    old = table(["id", "name"], ["1", "a"], ["2", "b"])
    new = table(["id", "name"], ["2", "b"], ["1", "a"])

    assert diff(align(old, new, CompareFlags())).has_changes()
    assert not diff(align(old, new, CompareFlags(ordered=False))).has_changes()


def test_inserted_column_adds_schema_row():
    old = table(["id"], ["1"])
    new = table(["id", "phone"], ["1", "555"])

    result = diff(align(old, new))

    assert result.schema_changed()
    assert result.has_changes()
    assert result.grid()[:2] == [["!", "", "+++"], ["@@", "id", "phone"]]


def test_deleted_column_in_schema_row():
    old = table(["id", "phone"], ["1", "555"])
    new = table(["id"], ["1"])

    result = diff(align(old, new), CompareFlags(show_unchanged=True))

    assert result.grid()[0] == ["!", "", "---"]
    assert result.rows[0].cells[1].tag == CellTag.DELETED
    assert result.rows[0].cells[1].value == "555"


def test_show_all_emits_schema_row_without_schema_change(people):
    old, _ = people

    result = diff(align(old, old), CompareFlags.show_all())

    assert result.grid()[0] == ["!", "", ""]
    assert len(result.content_rows()) == 2


def test_unchanged_context_inserts_gap_rows():
    rows = [[str(i), f"v{i}"] for i in range(1, 6)]
    old = table(["id", "value"], *rows)
    rows[2] = ["3", "changed"]
    new = table(["id", "value"], *rows)

    result = diff(align(old, new), CompareFlags(unchanged_context=1))

    assert [row.gap for row in result.rows] == [True, False, False, False, True]
    assert [row.new for row in result.content_rows()] == [1, 2, 3]
    assert result.skipped_rows == 2
    assert result.grid()[1] == ["...", "...", "..."]


def test_no_context_drops_unchanged_rows_without_gaps():
    rows = [[str(i), f"v{i}"] for i in range(1, 6)]
    old = table(["id", "value"], *rows)
    rows[2] = ["3", "changed"]
    new = table(["id", "value"], *rows)

    result = diff(align(old, new))

    assert len(result.rows) == 1
    assert not result.rows[0].gap
    assert result.skipped_rows == 4


def test_hide_unchanged_columns():
    old = table(["id", "name", "city"], ["1", "Alice", "Ottawa"])
    new = table(["id", "name", "city"], ["1", "Alicia", "Ottawa"])

    hidden = diff(align(old, new), CompareFlags(show_unchanged_columns=False))
    context = diff(
        align(old, new),
        CompareFlags(show_unchanged_columns=False, unchanged_column_context=1),
    )

    assert hidden.column_names() == ["name"]
    assert hidden.skipped_columns == 2
    assert hidden.grid()[1] == ["->", "Alice->Alicia"]
    assert context.column_names() == ["id", "name", "city"]


def test_to_table(people):
    old, new = people

    result = diff(align(old, new)).to_table()

    assert result.column_names() == ["@@", "id", "name"]
    assert result.row_count() == 2


def test_diff3_shows_outcome_against_ancestor():
    ancestor = table(["id", "name"], ["1", "Alice"])
    local = table(["id", "name"], ["1", "Alicia"])
    remote = table(["id", "name"], ["1", "Alice"], ["2", "Bob"])

    result = diff(align3(ancestor, local, remote))

    assert result.three_way
    assert result.grid() == [
        ["@@", "id", "name"],
        ["->", "1", "Alice->Alicia"],
        ["+++", "2", "Bob"],
    ]
    assert result.rows[0].ancestor == 0


def test_diff3_conflict_cell():
    ancestor = table(["id", "name"], ["1", "a"])
    local = table(["id", "name"], ["1", "b"])
    remote = table(["id", "name"], ["1", "c"])

    result = diff(align3(ancestor, local, remote))

    row = result.rows[0]
    assert row.tag == CellTag.CONFLICT
    assert row.cells[1].value == "(((a)))b///c"
    assert row.cells[1].tag == CellTag.CONFLICT
    assert result.columns[1].tag == CellTag.CONFLICT
    assert result.summary()["rows"]["conflict"] == 1


def test_diff3_remote_deletion():
    ancestor = table(["id", "name"], ["1", "a"], ["2", "b"])
    remote = table(["id", "name"], ["1", "a"])

    result = diff(align3(ancestor, ancestor, remote))

    assert [row.tag for row in result.rows] == [CellTag.DELETED]
    assert result.grid()[1] == ["---", "2", "b"]


@pytest.fixture
def phones():
    """A table before and after a phone column was added."""
    old = table(["id", "name"], ["1", "a"], ["2", "b"])
    new = table(["id", "name", "phone"], ["1", "a", "555-1"], ["2", "b", "555-2"])
    return old, new


def test_inserted_column_values_shown_with_default_flags(phones):
    old, new = phones

    result = diff(align(old, new))

    assert result.grid() == [
        ["!", "", "", "+++"],
        ["@@", "id", "name", "phone"],
        ["->", "1", "a", "555-1"],
        ["->", "2", "b", "555-2"],
    ]
    assert result.rows[0].tag == CellTag.MODIFIED
    assert result.rows[0].cells[2].tag == CellTag.INSERTED
    assert result.columns[2].tag == CellTag.INSERTED


def test_deleted_column_values_shown_with_default_flags(phones):
    old, new = phones

    result = diff(align(new, old))

    assert result.grid()[0] == ["!", "", "", "---"]
    assert [row.cells[2].value for row in result.rows] == ["555-1", "555-2"]


def test_empty_inserted_column_leaves_rows_unchanged():
    old = table(["id"], ["1"])
    new = table(["id", "phone"], ["1", ""])

    result = diff(align(old, new))

    assert result.rows == []
    assert result.has_changes()


def test_diff3_remote_column_values_shown(phones):
    old, new = phones

    result = diff(align3(old, old, new))

    assert result.grid()[0] == ["!", "", "", "+++"]
    assert result.grid()[2:] == [["->", "1", "a", "555-1"], ["->", "2", "b", "555-2"]]
