"""Tests for the diff, diff3, merge and match-columns commands."""

import json

import pytest

from centre_tables.commands.diff import default_output, diff3_tables, diff_tables, load_table
from centre_tables.commands.match_columns import match_columns
from centre_tables.commands.merge import merge_tables
from centre_tables.metadata import RenameMetadataIO
from centre_tables.models import CompareFlags, RenameMetadata


def write_csv(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.fixture
def tables(tmp_path):
    """Ancestor, local and remote CSVs for a small merge scenario."""
    return {
        "ancestor": write_csv(tmp_path / "ancestor.csv", "id,name\n1,Alice\n"),
        "local": write_csv(tmp_path / "local.csv", "id,name\n1,Alicia\n"),
        "remote": write_csv(tmp_path / "remote.csv", "id,name\n1,Alice\n2,Bob\n"),
    }


def test_default_output():
    assert default_output("diff2", "a/local.csv", "b/remote.csv") == "diff2_local_remote.html"
    assert default_output("diff3", "x.csv", "y.csv", "z.csv") == "diff3_x_y_z.html"


def test_load_table_missing(tmp_path):
    with pytest.raises(FileNotFoundError, match="Table not found"):
        load_table(str(tmp_path / "missing.csv"))


def test_load_table_applies_rename(tmp_path):
    path = write_csv(tmp_path / "odc.csv", "full_name,town\nAlice,Ottawa\n")
    meta = tmp_path / "metadata.json"
    RenameMetadataIO.write(RenameMetadata(rename={"full_name": "name"}), str(meta))

    table = load_table(path, str(meta))

    assert table.column_names() == ["name", "town"]


def test_diff_writes_report(tables, tmp_path):
    output = tmp_path / "out" / "diff.html"

    result = diff_tables(tables["local"], tables["remote"], str(output))

    assert result == 1
    html = output.read_text(encoding="utf-8")
    assert "<title>local.csv vs remote.csv</title>" in html
    assert "Alicia-&gt;Alice" in html


def test_diff_identical_tables(tables, tmp_path):
    result = diff_tables(tables["ancestor"], tables["ancestor"], str(tmp_path / "same.html"))

    assert result == 0
    assert (tmp_path / "same.html").exists()


def test_diff_default_output(tables, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    diff_tables(tables["local"], tables["remote"], show="text")

    assert (tmp_path / "diff2_local_remote.html").exists()


def test_diff_missing_input(tmp_path, tables):
    result = diff_tables(str(tmp_path / "nope.csv"), tables["remote"], str(tmp_path / "x.html"))

    assert result == 1
    assert not (tmp_path / "x.html").exists()


def test_diff_with_rename_metadata(tmp_path):
    local = write_csv(tmp_path / "local.csv", "id,name\n1,Alice\n")
    remote = write_csv(tmp_path / "remote.csv", "id,full_name\n1,Alice\n")
    meta = tmp_path / "metadata.json"
    RenameMetadataIO.write(RenameMetadata(rename={"full_name": "name"}), str(meta))

    without = diff_tables(local, remote, str(tmp_path / "a.html"))
    renamed = diff_tables(local, remote, str(tmp_path / "b.html"), rename=str(meta))

    assert without == 1
    assert renamed == 0


def test_diff3_writes_report(tables, tmp_path):
    output = tmp_path / "diff3.html"

    result = diff3_tables(
        tables["ancestor"], tables["local"], tables["remote"], str(output), show="table"
    )

    assert result == 1
    html = output.read_text(encoding="utf-8")
    assert "Alice-&gt;Alicia" in html
    assert '<tr class="add">' in html


def test_merge_without_conflicts(tables, tmp_path):
    output = tmp_path / "merged.csv"
    html = tmp_path / "merge.html"

    result = merge_tables(
        tables["ancestor"], tables["local"], tables["remote"], str(output), html=str(html)
    )

    assert result == 0
    assert output.read_bytes() == b"id,name\n1,Alicia\n2,Bob\n"
    assert '<div class="highlighter">' in html.read_text(encoding="utf-8")


def test_merge_with_conflicts(tmp_path):
    ancestor = write_csv(tmp_path / "ancestor.csv", "id,name\n1,a\n")
    local = write_csv(tmp_path / "local.csv", "id,name\n1,b\n")
    remote = write_csv(tmp_path / "remote.csv", "id,name\n1,c\n")
    output = tmp_path / "merged.csv"
    conflicts = tmp_path / "conflicts.json"

    result = merge_tables(ancestor, local, remote, str(output), conflicts=str(conflicts))

    assert result == 1
    assert output.read_text(encoding="utf-8") == "id,name\n1,b\n"
    [info] = json.loads(conflicts.read_text(encoding="utf-8"))
    assert info["column"] == "name"
    assert (info["ancestor_value"], info["local_value"], info["remote_value"]) == ("a", "b", "c")


def test_merge_ordered_flags(tables, tmp_path):
    output = tmp_path / "merged.csv"

    result = merge_tables(
        tables["ancestor"],
        tables["local"],
        tables["remote"],
        str(output),
        flags=CompareFlags(ordered=True),
    )

    assert result == 0
    assert output.read_text(encoding="utf-8") == "id,name\n1,Alicia\n2,Bob\n"


def test_merge_missing_input(tables, tmp_path):
    output = tmp_path / "merged.csv"
    missing = str(tmp_path / "nope.csv")

    result = merge_tables(missing, tables["local"], tables["remote"], str(output))

    assert result == 1
    assert not output.exists()


def test_match_columns_saves_choices(tmp_path):
    local = write_csv(tmp_path / "wecount.csv", "name,city\nAlice,Toronto\nBob,Ottawa\n")
    remote = write_csv(tmp_path / "odc.csv", "full_name,town\nAlice,Toronto\nBob,Ottawa\n")
    output = tmp_path / "metadata.json"
    asked = []

    def pick_first(question):
        asked.append(question.local_column)
        return question.choices[0]

    result = match_columns(local, remote, str(output), ask=pick_first)

    assert result == 0
    assert asked == ["name", "city"]
    metadata = RenameMetadataIO.read(str(output))
    assert metadata.rename == {"full_name": "name", "town": "city"}
    assert metadata.source == remote
    assert metadata.target == local


def test_match_columns_same_names_asks_nothing(tables, tmp_path):
    output = tmp_path / "metadata.json"

    def never(question):
        raise AssertionError(f"unexpected question for {question.local_column}")

    result = match_columns(tables["ancestor"], tables["remote"], str(output), ask=never)

    assert result == 0
    assert RenameMetadataIO.read(str(output)).rename == {}


def test_match_columns_bad_threshold(tables, tmp_path):
    result = match_columns(
        tables["ancestor"], tables["remote"], str(tmp_path / "m.json"), threshold=2.0
    )

    assert result == 1


def test_merge_writes_untouched_local_cells_verbatim(tmp_path):
    ancestor = write_csv(tmp_path / "ancestor.csv", "id,name\n1, Alice \n2,Bob\n")
    remote = write_csv(tmp_path / "remote.csv", "id,name\n1,Alice\n2,Robert\n")
    output = tmp_path / "merged.csv"

    result = merge_tables(ancestor, ancestor, remote, str(output))

    assert result == 0
    assert output.read_bytes() == b"id,name\n1, Alice \n2,Robert\n"


def test_diff_shows_inserted_column_values(tmp_path):
    local = write_csv(tmp_path / "local.csv", "id,name\n1,a\n")
    remote = write_csv(tmp_path / "remote.csv", "id,name,phone\n1,a,555-1\n")
    output = tmp_path / "diff.html"

    assert diff_tables(local, remote, str(output)) == 1
    assert '<td class="add">555-1</td>' in output.read_text(encoding="utf-8")
