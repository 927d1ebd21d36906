"""Data models for centre-tables.

This module defines the comparison options, merge conflict records and the
column rename metadata exchanged between the column matcher and the
diff/merge commands.
"""

from dataclasses import asdict, dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class CompareFlags:
    """Options controlling alignment and which parts of a diff are materialized.

    Attributes:
        ordered: If True, rows are matched preserving relative order and a
            moved row shows up as a deletion plus an insertion. If False,
            rows are matched by content regardless of position.
        show_unchanged: Keep unchanged rows in the diff output
        show_unchanged_columns: Keep unchanged columns in the diff output
        show_unchanged_meta: Always emit the schema ("!") row, even when no
            column was inserted or deleted
        unchanged_context: Unchanged rows kept around each changed row when
            show_unchanged is False
        unchanged_column_context: Unchanged columns kept next to each changed
            column when show_unchanged_columns is False
    """

    ordered: bool = True
    show_unchanged: bool = False
    show_unchanged_columns: bool = True
    show_unchanged_meta: bool = False
    unchanged_context: int = 0
    unchanged_column_context: int = 0

    def with_options(self, **changes: Any) -> "CompareFlags":
        """Return a copy with the given options changed."""
        return replace(self, **changes)

    @classmethod
    def show_all(cls, ordered: bool = True) -> "CompareFlags":
        """Flags that materialize every row, column and the schema row."""
        return cls(
            ordered=ordered,
            show_unchanged=True,
            show_unchanged_columns=True,
            show_unchanged_meta=True,
        )


@dataclass(frozen=True)
class ConflictInfo:
    """A cell where local and remote both diverged from the ancestor.

    Attributes:
        row: Row index in the merged table (None if the row is not present
            in the merged result, e.g. deleted locally)
        column: Column name
        ancestor_row: Row index in the ancestor table (None if inserted)
        local_row: Row index in the local table (None if absent)
        remote_row: Row index in the remote table (None if absent)
        ancestor_value: Normalized ancestor value (None if absent)
        local_value: Normalized local value (None if absent)
        remote_value: Normalized remote value (None if absent)
    """

    row: int | None
    column: str
    ancestor_row: int | None
    local_row: int | None
    remote_row: int | None
    ancestor_value: str | None
    local_value: str | None
    remote_value: str | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class RenameMetadata:
    """Column rename choices between a remote and a local table.

    Attributes:
        rename: Map of remote column name -> local column name
        source: Remote file the renames apply to
        target: Local file whose names are adopted
        include: Columns to keep (reserved, empty means all)
        exclude: Columns to drop (reserved)
    """

    rename: dict[str, str] = field(default_factory=dict)
    source: str = ""
    target: str = ""
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "rename": dict(self.rename),
            "from:": self.source,
            "to:": self.target,
            "include": list(self.include),
            "exclude": list(self.exclude),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenameMetadata":
        """Create from dictionary loaded from JSON.

        Raises:
            ValueError: If the rename section is missing or not a mapping
        """
        rename = data.get("rename")
        if not isinstance(rename, dict):
            raise ValueError("Rename metadata must contain a 'rename' object")
        return cls(
            rename={str(k): str(v) for k, v in rename.items()},
            source=data.get("from:", data.get("from", "")),
            target=data.get("to:", data.get("to", "")),
            include=list(data.get("include", [])),
            exclude=list(data.get("exclude", [])),
        )
