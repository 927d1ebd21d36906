from .diff import diff3_tables, diff_tables
from .match_columns import match_columns
from .merge import merge_tables

__all__ = ["diff_tables", "diff3_tables", "match_columns", "merge_tables"]
