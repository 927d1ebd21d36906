"""Diff commands - highlight changes between two or three table versions."""

import logging
from pathlib import Path

from rich.console import Console

from centre_tables.align import align, align3
from centre_tables.csvio import read_csv_table
from centre_tables.highlight import DiffTable, diff
from centre_tables.metadata import RenameMetadataIO
from centre_tables.models import CompareFlags
from centre_tables.render import complete_html, render_text, to_rich_table
from centre_tables.table import Table

logger = logging.getLogger(__name__)
console = Console()


def default_output(scenario: str, *paths: str) -> str:
    """Build the ``<scenario>_<left>_<right>.html`` output name from input paths."""
    stems = [Path(p).stem for p in paths]
    return "_".join([scenario, *stems]) + ".html"


def load_table(path: str, rename: str | None = None) -> Table:
    """Read a CSV table, applying column renames from a metadata file if given.

    Raises:
        FileNotFoundError: If the CSV or metadata file doesn't exist
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Table not found: {path}")
    table = read_csv_table(path)
    if rename:
        metadata = RenameMetadataIO.read(rename)
        table = table.rename_columns(metadata.rename)
        for old, new in metadata.rename.items():
            logger.info(f'The column "{old}" is renamed to "{new}"')
    return table


def write_report(diff_table: DiffTable, output: str, title: str) -> None:
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(complete_html(diff_table, title=title))


def print_summary(diff_table: DiffTable) -> None:
    rows = diff_table.summary()["rows"]
    columns = diff_table.summary()["columns"]
    console.print(
        f"Rows: [green]+{rows['inserted']}[/green] [red]-{rows['deleted']}[/red] "
        f"[yellow]~{rows['modified']}[/yellow]"
        + (f" [magenta]!{rows['conflict']}[/magenta]" if diff_table.three_way else "")
        + f" | Columns: [green]+{columns['inserted']}[/green] [red]-{columns['deleted']}[/red]"
    )


def _show(diff_table: DiffTable, show: str | None, title: str) -> None:
    if show == "table":
        console.print(to_rich_table(diff_table, title=title))
    elif show == "text":
        console.out(render_text(diff_table), end="")


def diff_tables(
    local: str,
    remote: str,
    output: str | None = None,
    rename: str | None = None,
    flags: CompareFlags | None = None,
    show: str | None = None,
) -> int:
    """Highlight the changes from ``local`` to ``remote`` and write an HTML report.

    Args:
        local: Path to the old/local CSV
        remote: Path to the new/remote CSV
        output: Output HTML path (default: diff2_<local>_<remote>.html)
        rename: Optional rename metadata JSON applied to the remote table
        flags: Comparison options
        show: Also print the diff to the terminal ("table" or "text")

    Returns:
        0 if no differences found, 1 if differences found or errors occurred
    """
    flags = flags or CompareFlags()
    output = output or default_output("diff2", local, remote)

    try:
        local_table = load_table(local)
        remote_table = load_table(remote, rename)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    diff_table = diff(align(local_table, remote_table, flags), flags)
    title = f"{Path(local).name} vs {Path(remote).name}"

    try:
        write_report(diff_table, output, title)
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write output: {e}")
        return 1

    _show(diff_table, show, title)
    print_summary(diff_table)
    console.print(f"[green]✓[/green] Diff written to {output}")
    return 1 if diff_table.has_changes() else 0


def diff3_tables(
    ancestor: str,
    local: str,
    remote: str,
    output: str | None = None,
    rename: str | None = None,
    flags: CompareFlags | None = None,
    show: str | None = None,
) -> int:
    """Highlight a three-way comparison (ancestor state shown) as an HTML report.

    Returns:
        0 if neither side changed anything, 1 if changes found or errors occurred
    """
    flags = flags or CompareFlags()
    output = output or default_output("diff3", ancestor, local, remote)

    try:
        ancestor_table = load_table(ancestor)
        local_table = load_table(local)
        remote_table = load_table(remote, rename)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    alignment = align3(ancestor_table, local_table, remote_table, flags)
    diff_table = diff(alignment, flags)
    title = f"{Path(ancestor).name}: {Path(local).name} vs {Path(remote).name}"

    try:
        write_report(diff_table, output, title)
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write output: {e}")
        return 1

    _show(diff_table, show, title)
    print_summary(diff_table)
    console.print(f"[green]✓[/green] Diff written to {output}")
    return 1 if diff_table.has_changes() else 0
