"""Tests for HTML, text and rich rendering of diff tables."""

import pytest

from centre_tables.align import align
from centre_tables.highlight import diff
from centre_tables.models import CompareFlags
from centre_tables.render import complete_html, escape_html, render_html, render_text, to_rich_table
from centre_tables.table import Table


def table(*rows):
    return Table.from_rows([list(r) for r in rows])


@pytest.fixture
def people_diff():
    """Diff with one modified and one inserted row."""
    old = table(["id", "name"], ["1", "Alice"], ["2", "Bob"])
    new = table(["id", "name"], ["1", "Alicia"], ["2", "Bob"], ["3", "Carol"])
    return diff(align(old, new))


def test_escape_html():
    assert escape_html('<a href="x">&</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;"
    assert escape_html("it's") == "it&#x27;s"
    assert escape_html("plain") == "plain"


def test_render_text(people_diff):
    assert render_text(people_diff) == (
        "@@  | id | name\n"
        "->  | 1  | Alice->Alicia\n"
        "+++ | 3  | Carol\n"
    )


def test_render_html_classes(people_diff):
    html = render_html(people_diff)

    assert html.startswith('<div class="highlighter">')
    assert '<th class="modify">name</th>' in html
    assert '<tr class="modify"><td class="modify">-&gt;</td><td>1</td>' in html
    assert '<td class="modify">Alice-&gt;Alicia</td>' in html
    assert '<tr class="add">' in html
    assert 'class="spec"' not in html


def test_render_html_escapes_values():
    old = table(["id", "note"], ["1", "<b>"])
    new = table(["id", "note"], ["1", "a & b"])

    html = render_html(diff(align(old, new)))

    assert "&lt;b&gt;-&gt;a &amp; b" in html
    assert "<b>" not in html


def test_render_html_schema_row():
    old = table(["id"], ["1"])
    new = table(["id", "phone"], ["1", "555"])

    html = render_html(diff(align(old, new)))

    assert '<tr class="spec"><td>!</td><td></td><td class="add">+++</td></tr>' in html


def test_render_html_gap_rows():
    rows = [[str(i), f"v{i}"] for i in range(1, 6)]
    old = table(["id", "value"], *rows)
    rows[2] = ["3", "changed"]
    new = table(["id", "value"], *rows)

    html = render_html(diff(align(old, new), CompareFlags(unchanged_context=1)))

    assert html.count('<tr class="gap">') == 2


def test_complete_html(people_diff):
    html = complete_html(people_diff, title="local.csv vs <remote>.csv")

    assert html.startswith("<!DOCTYPE html>")
    assert "<title>local.csv vs &lt;remote&gt;.csv</title>" in html
    assert '<span class="stat add">Inserted:</span> 1 row(s)' in html
    assert '<span class="stat modify">Modified:</span> 1 row(s)' in html
    assert '<div class="highlighter">' in html


def test_to_rich_table(people_diff):
    rich_table = to_rich_table(people_diff, title="people")

    assert len(rich_table.columns) == 3
    assert rich_table.row_count == 2
    assert rich_table.title == "people"
