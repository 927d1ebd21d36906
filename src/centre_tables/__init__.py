"""Assessment-centre table tools - git-friendly CSV diff, highlight and three-way merge."""

try:
    from importlib.metadata import version

    __version__ = version("centre-tables")
except Exception:
    __version__ = "unknown"
