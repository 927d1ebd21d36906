"""Match-columns command - pick which remote columns are the same as local ones."""

import logging
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.prompt import Prompt

from centre_tables.commands.diff import load_table
from centre_tables.metadata import RenameMetadataIO
from centre_tables.models import RenameMetadata
from centre_tables.similarity import (
    DEFAULT_THRESHOLD,
    Question,
    RenameState,
    answer,
    next_question,
    similarity_results,
)

logger = logging.getLogger(__name__)
console = Console()

Asker = Callable[[Question], str]


def prompt_question(question: Question) -> str:
    """Ask a question on the terminal; returns the chosen remote column or "None"."""
    console.print(f"\n[bold]{question.message}[/bold]")
    for k, candidate in enumerate(question.candidates, start=1):
        console.print(f"  {k}. {candidate.label}")
    console.print(f"  {len(question.candidates) + 1}. None")

    numbers = [str(k) for k in range(1, len(question.choices) + 1)]
    picked = Prompt.ask("Choice", choices=numbers, default=numbers[0], console=console)
    return question.choices[int(picked) - 1]


def match_columns(
    local: str,
    remote: str,
    output: str,
    threshold: float = DEFAULT_THRESHOLD,
    ask: Asker | None = None,
) -> int:
    """Interactively match remote columns to local columns and save rename metadata.

    Args:
        local: Path to the local CSV (its column names are kept)
        remote: Path to the remote CSV (its columns get renamed)
        output: Output path for the rename metadata JSON
        threshold: Minimum similarity score (0-1) for a column to be offered
        ask: Callable answering a Question (default: terminal prompt)

    Returns:
        0 on success, 1 on error
    """
    ask = ask or prompt_question

    try:
        local_table = load_table(local)
        remote_table = load_table(remote)
        results = similarity_results(local_table, remote_table, threshold)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    console.print("----- Initial Remote Column Names -----")
    console.print(remote_table.column_names())

    if local_table.column_names() == remote_table.column_names():
        console.print("Column names already match; nothing to rename.")
        rename: dict[str, str] = {}
    else:
        state = RenameState.start(results)
        step = next_question(state)
        while isinstance(step, Question):
            state = answer(state, ask(step))
            step = next_question(state)
        rename = step.rename

    if rename:
        for remote_name, local_name in rename.items():
            console.print(f'The column "{remote_name}" is renamed to "{local_name}"')
    else:
        console.print("There are no similar columns between the tables.")

    metadata = RenameMetadata(rename=rename, source=str(Path(remote)), target=str(Path(local)))
    try:
        RenameMetadataIO.write(metadata, output)
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write metadata: {e}")
        return 1

    console.print("\n----- Final Remote Column Names -----")
    console.print(remote_table.rename_columns(rename).column_names())
    console.print(f"[green]✓[/green] Metadata has been saved to {output}")
    return 0
