"""Render highlighted diff tables as HTML, plain text or rich tables."""

from rich.table import Table as RichTable
from rich.text import Text

from .highlight import CellTag, DiffTable

CELL_CLASSES = {
    CellTag.UNCHANGED: "",
    CellTag.INSERTED: "add",
    CellTag.DELETED: "remove",
    CellTag.MODIFIED: "modify",
    CellTag.CONFLICT: "conflict",
}

RICH_STYLES = {
    CellTag.UNCHANGED: "",
    CellTag.INSERTED: "green",
    CellTag.DELETED: "red strike",
    CellTag.MODIFIED: "yellow",
    CellTag.CONFLICT: "bold magenta",
}

STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 0;
            padding: 20px;
            background: #f5f5f5;
        }
        .container {
            max-width: 1400px;
            margin: 0 auto;
            background: white;
            padding: 30px;
            border-radius: 8px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        h1 {
            color: #333;
            border-bottom: 2px solid #007bff;
            padding-bottom: 10px;
        }
        .summary {
            background: #f8f9fa;
            padding: 20px;
            border-radius: 5px;
            margin: 20px 0;
        }
        .summary ul { list-style: none; padding: 0; }
        .summary li { padding: 8px 0; border-bottom: 1px solid #dee2e6; }
        .stat { font-weight: bold; margin-right: 10px; }
        .stat.add { color: #28a745; }
        .stat.remove { color: #dc3545; }
        .stat.modify { color: #ffc107; }
        .stat.conflict { color: #a020f0; }

        .highlighter table {
            border-collapse: collapse;
            font-family: monospace;
            font-size: 0.85em;
        }
        .highlighter th, .highlighter td {
            border: 1px solid #ddd;
            padding: 4px 8px;
            text-align: left;
            white-space: nowrap;
        }
        .highlighter thead th { background: #f1f1f1; font-weight: bold; }
        .highlighter .spec td, .highlighter .spec th { background-color: #aaa; }
        .highlighter .add { background-color: #d4edda; }
        .highlighter .remove { background-color: #f8d7da; text-decoration: line-through; }
        .highlighter .modify { background-color: #fff3cd; }
        .highlighter .conflict { background-color: #e8c8f8; font-weight: bold; }
        .highlighter .gap td {
            text-align: center;
            font-style: italic;
            color: #666;
            background-color: #f0f0f0;
        }
"""


def escape_html(text: str) -> str:
    """Escape HTML special characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def _td(text: str, css: str, tag: str = "td") -> str:
    attr = f' class="{css}"' if css else ""
    return f"<{tag}{attr}>{escape_html(text)}</{tag}>"


def render_html(diff_table: DiffTable) -> str:
    """Render a diff table as an HTML ``<table>`` fragment.

    Rows and cells carry one CSS class per tag (add, remove, modify,
    conflict); the schema row uses ``spec`` and skipped runs use ``gap``.
    """
    grid = diff_table.grid()
    parts = ['<div class="highlighter">', "<table>", "<thead>"]

    offset = 0
    if grid[0][0] == "!":
        spec = [_td("!", "")]
        for column, marker in zip(diff_table.columns, grid[0][1:]):
            spec.append(_td(marker, CELL_CLASSES[column.tag]))
        parts.append('<tr class="spec">' + "".join(spec) + "</tr>")
        offset = 1

    header = [_td(grid[offset][0], "", "th")]
    for column in diff_table.columns:
        header.append(_td(column.name, CELL_CLASSES[column.tag], "th"))
    parts.append("<tr>" + "".join(header) + "</tr>")
    parts.append("</thead>")
    parts.append("<tbody>")

    for row in diff_table.rows:
        if row.gap:
            cells = [_td("...", "")] + [_td("...", "") for _ in diff_table.columns]
            parts.append('<tr class="gap">' + "".join(cells) + "</tr>")
            continue
        row_class = CELL_CLASSES[row.tag]
        cells = [_td(row.marker, row_class)]
        cells.extend(_td(cell.value, CELL_CLASSES[cell.tag]) for cell in row.cells)
        attr = f' class="{row_class}"' if row_class else ""
        parts.append(f"<tr{attr}>" + "".join(cells) + "</tr>")

    parts.extend(["</tbody>", "</table>", "</div>"])
    return "\n".join(parts) + "\n"


def complete_html(diff_table: DiffTable, title: str = "Table diff") -> str:
    """Wrap :func:`render_html` in a self-contained HTML document with a summary."""
    summary = diff_table.summary()["rows"]
    title_html = escape_html(title)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{title_html}</title>
    <style>{STYLE}    </style>
</head>
<body>
    <div class="container">
        <h1>{title_html}</h1>
        <div class="summary">
            <ul>
                <li><span class="stat add">Inserted:</span> {summary["inserted"]} row(s)</li>
                <li><span class="stat remove">Deleted:</span> {summary["deleted"]} row(s)</li>
                <li><span class="stat modify">Modified:</span> {summary["modified"]} row(s)</li>
                <li><span class="stat conflict">Conflicts:</span> {summary["conflict"]} row(s)</li>
            </ul>
        </div>
{render_html(diff_table)}    </div>
</body>
</html>
"""


def render_text(diff_table: DiffTable) -> str:
    """Render the highlighter layout as a padded plain-text grid."""
    grid = diff_table.grid()
    widths = [max(len(row[k]) for row in grid) for k in range(len(grid[0]))]
    lines = [
        " | ".join(value.ljust(width) for value, width in zip(row, widths)).rstrip()
        for row in grid
    ]
    return "\n".join(lines) + "\n"


def to_rich_table(diff_table: DiffTable, title: str | None = None) -> RichTable:
    """Build a rich table with per-tag styling for terminal output."""
    table = RichTable(title=title, show_lines=False)
    table.add_column(Text("@@"), style="bold")
    for column in diff_table.columns:
        table.add_column(Text(column.name, style=RICH_STYLES[column.tag]))

    for row in diff_table.rows:
        if row.gap:
            table.add_row(*(["..."] * (len(diff_table.columns) + 1)), style="dim")
            continue
        cells = [Text(row.marker, style=RICH_STYLES[row.tag])]
        cells.extend(Text(cell.value, style=RICH_STYLES[cell.tag]) for cell in row.cells)
        table.add_row(*cells)
    return table
