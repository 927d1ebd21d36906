"""Command-line interface for centre-tables."""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich_argparse import RichHelpFormatter

from centre_tables import __version__
from centre_tables.models import CompareFlags

console = Console()


def _add_compare_options(parser: argparse.ArgumentParser, unordered_default: bool) -> None:
    parser.add_argument(
        "--rename",
        help="Rename metadata JSON (from match-columns) applied to the remote table",
    )
    order = parser.add_mutually_exclusive_group()
    order.add_argument(
        "--unordered",
        dest="ordered",
        action="store_false",
        default=not unordered_default,
        help="Match rows by content regardless of position",
    )
    order.add_argument(
        "--ordered",
        dest="ordered",
        action="store_true",
        help="Treat row order as significant (moved rows become delete + insert)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Show unchanged rows, columns and the schema row",
    )
    parser.add_argument(
        "--context",
        type=int,
        default=0,
        help="Unchanged rows shown around each change (default: 0)",
    )
    parser.add_argument(
        "--hide-unchanged-columns",
        action="store_true",
        help="Drop columns without changes from the output",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (renames, alignment statistics)",
    )


def _flags(args: argparse.Namespace) -> CompareFlags:
    if args.all:
        flags = CompareFlags.show_all(ordered=args.ordered)
    else:
        flags = CompareFlags(ordered=args.ordered, unchanged_context=args.context)
    if args.hide_unchanged_columns:
        flags = flags.with_options(show_unchanged_columns=False)
    return flags


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="centre-tables",
        description="Git-friendly CLI for diffing and merging assessment-centre CSV datasets",
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # diff command
    diff_parser = subparsers.add_parser(
        "diff",
        help="Highlight changes between two CSV tables",
        description="Align two CSV tables and write a highlighted HTML diff.",
        epilog="""
Examples:
  # Write diff2_local_remote.html
  centre-tables diff local.csv remote.csv

  # Custom output, show every row, print the diff in the terminal
  centre-tables diff local.csv remote.csv --output diff.html --all --show table

  # Apply column renames chosen with match-columns first
  centre-tables diff wecount.csv odc.csv --rename metadata.json

Exit codes:
  - 0: No differences found
  - 1: Differences found or errors occurred
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    diff_parser.add_argument("local", help="Path to local (old) CSV")
    diff_parser.add_argument("remote", help="Path to remote (new) CSV")
    diff_parser.add_argument(
        "--output", help="Output HTML file (default: diff2_<local>_<remote>.html)"
    )
    diff_parser.add_argument(
        "--show", choices=["table", "text"], help="Also print the diff to the terminal"
    )
    _add_compare_options(diff_parser, unordered_default=False)

    # diff3 command
    diff3_parser = subparsers.add_parser(
        "diff3",
        help="Highlight a three-way comparison against a common ancestor",
        description="Align ancestor, local and remote tables and write a highlighted HTML diff.",
        epilog="""
Examples:
  # Write diff3_ancestor_local_remote.html
  centre-tables diff3 ancestor.csv local.csv remote.csv

Cells show ancestor->value for one-sided changes and
(((ancestor)))local///remote for conflicts.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    diff3_parser.add_argument("ancestor", help="Path to common ancestor CSV")
    diff3_parser.add_argument("local", help="Path to local CSV")
    diff3_parser.add_argument("remote", help="Path to remote CSV")
    diff3_parser.add_argument(
        "--output", help="Output HTML file (default: diff3_<ancestor>_<local>_<remote>.html)"
    )
    diff3_parser.add_argument(
        "--show", choices=["table", "text"], help="Also print the diff to the terminal"
    )
    _add_compare_options(diff3_parser, unordered_default=True)

    # merge command
    merge_parser = subparsers.add_parser(
        "merge",
        help="Three-way merge remote changes into the local table",
        description="Merge changes between ancestor and remote into local; report conflicts.",
        epilog="""
Examples:
  # Merge and write the result
  centre-tables merge ancestor.csv local.csv remote.csv --output merged.csv

  # Also write an HTML report and conflicts as JSON
  centre-tables merge ancestor.csv local.csv remote.csv --output merged.csv \\
      --html merge.html --conflicts conflicts.json

Exit codes:
  - 0: Merged without conflicts (safe to commit)
  - 1: Conflicts found (local values kept, review needed) or errors occurred
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    merge_parser.add_argument("ancestor", help="Path to common ancestor CSV")
    merge_parser.add_argument("local", help="Path to local CSV")
    merge_parser.add_argument("remote", help="Path to remote CSV")
    merge_parser.add_argument("--output", required=True, help="Output path for merged CSV")
    merge_parser.add_argument("--html", help="Also write a 3-way HTML diff report")
    merge_parser.add_argument("--conflicts", help="Write conflicts as JSON")
    _add_compare_options(merge_parser, unordered_default=True)

    # match-columns command
    match_parser = subparsers.add_parser(
        "match-columns",
        help="Choose which remote columns are the same as local columns",
        description=(
            "Score column similarity by shared values, ask which columns match and save "
            "rename metadata for diff/merge --rename."
        ),
        epilog="""
Examples:
  centre-tables match-columns wecount.csv odc.csv --output metadata.json

  # Only offer columns sharing more than half of their values
  centre-tables match-columns wecount.csv odc.csv --output metadata.json --threshold 0.5
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    match_parser.add_argument("local", help="Path to local CSV (names kept)")
    match_parser.add_argument("remote", help="Path to remote CSV (columns renamed)")
    match_parser.add_argument("--output", required=True, help="Output rename metadata JSON")
    match_parser.add_argument(
        "--threshold",
        type=float,
        default=0.2,
        help="Similarity score (0-1) a column must exceed to be offered (default: 0.2)",
    )
    match_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    _configure_logging(args.verbose)

    # Import command handlers
    if args.command == "diff":
        from centre_tables.commands.diff import diff_tables

        return diff_tables(
            args.local, args.remote, args.output, args.rename, _flags(args), args.show
        )
    elif args.command == "diff3":
        from centre_tables.commands.diff import diff3_tables

        return diff3_tables(
            args.ancestor,
            args.local,
            args.remote,
            args.output,
            args.rename,
            _flags(args),
            args.show,
        )
    elif args.command == "merge":
        from centre_tables.commands.merge import merge_tables

        try:
            return merge_tables(
                args.ancestor,
                args.local,
                args.remote,
                args.output,
                args.html,
                args.conflicts,
                args.rename,
                _flags(args),
            )
        except Exception as e:
            console.print(f"[red]Error:[/red] {e}")
            if args.verbose:
                import traceback

                traceback.print_exc()
            return 1
    elif args.command == "match-columns":
        from centre_tables.commands.match_columns import match_columns

        if not 0 <= args.threshold <= 1:
            console.print("[red]Error:[/red] --threshold must be a number between 0 and 1")
            return 1
        return match_columns(args.local, args.remote, args.output, args.threshold)

    return 0


if __name__ == "__main__":
    sys.exit(main())
