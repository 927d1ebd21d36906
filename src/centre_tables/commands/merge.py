"""Merge command - apply remote changes onto the local table."""

import json
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table as RichTable

from centre_tables.commands.diff import load_table, write_report
from centre_tables.csvio import write_table_csv
from centre_tables.highlight import diff
from centre_tables.merge import Merger
from centre_tables.models import CompareFlags, ConflictInfo

logger = logging.getLogger(__name__)
console = Console()


def merge_tables(
    ancestor: str,
    local: str,
    remote: str,
    output: str,
    html: str | None = None,
    conflicts: str | None = None,
    rename: str | None = None,
    flags: CompareFlags | None = None,
) -> int:
    """Three-way merge remote changes into local and write the merged CSV.

    Args:
        ancestor: Path to the common ancestor CSV
        local: Path to the local CSV (changes are merged into a copy of it)
        remote: Path to the remote CSV
        output: Output path for the merged CSV
        html: Optional output path for a 3-way HTML diff report
        conflicts: Optional output path for conflicts as JSON
        rename: Optional rename metadata JSON applied to the remote table
        flags: Comparison options (default: unordered matching)

    Returns:
        0 if merged without conflicts, 1 if conflicts were found or errors occurred.
        The merged CSV is written either way; conflicting cells keep the local value.
    """
    flags = flags or CompareFlags(ordered=False)

    try:
        ancestor_table = load_table(ancestor)
        local_table = load_table(local)
        remote_table = load_table(remote, rename)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    merger = Merger(ancestor_table, local_table, remote_table, flags)
    conflict_count = merger.apply()
    conflict_infos = merger.get_conflict_infos()

    try:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        digest = write_table_csv(merger.merged_table(), str(output_path))
        logger.info(f"Merged CSV sha256: {digest}")

        if html:
            diff_table = diff(merger.alignment, flags.with_options(show_unchanged=True))
            write_report(diff_table, html, f"Merge of {Path(remote).name} into {Path(local).name}")

        if conflicts:
            _write_conflicts(conflict_infos, conflicts)
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write output: {e}")
        return 1

    if conflict_count:
        console.print(_conflict_table(conflict_infos))
        console.print(
            f"[yellow]⚠[/yellow]  {conflict_count} merge conflict(s); local values kept. "
            f"Review before committing {output}"
        )
        return 1

    console.print(f"[green]✓[/green] Merged without conflicts: {output}")
    return 0


def _write_conflicts(conflict_infos: list[ConflictInfo], path: str) -> None:
    conflicts_path = Path(path)
    conflicts_path.parent.mkdir(parents=True, exist_ok=True)
    with open(conflicts_path, "w", encoding="utf-8", newline="\n") as f:
        json.dump([c.to_dict() for c in conflict_infos], f, indent=2, ensure_ascii=False)
        f.write("\n")


def _conflict_table(conflict_infos: list[ConflictInfo]) -> RichTable:
    table = RichTable(title="Merge conflicts")
    table.add_column("Row", justify="right")
    table.add_column("Column")
    table.add_column("Ancestor")
    table.add_column("Local", style="cyan")
    table.add_column("Remote", style="magenta")
    for info in conflict_infos:
        table.add_row(
            "-" if info.row is None else str(info.row + 1),
            info.column,
            _show_value(info.ancestor_value),
            _show_value(info.local_value),
            _show_value(info.remote_value),
        )
    return table


def _show_value(value: str | None) -> str:
    return "(absent)" if value is None else value
