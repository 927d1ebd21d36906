"""Rename metadata files shared by ``match-columns`` and the diff/merge commands.

``match-columns`` saves the remote -> local column choices once; ``diff``,
``diff3`` and ``merge`` read them back through ``--rename``.
"""

import json
import os
import tempfile
from pathlib import Path

from .models import RenameMetadata


class RenameMetadataIO:
    """Load and save :class:`RenameMetadata` JSON files."""

    @staticmethod
    def write(metadata: RenameMetadata, path: str) -> None:
        """Save the rename choices to ``path``, creating parent directories.

        Keys are sorted and the file ends with a newline so that re-running
        ``match-columns`` with the same answers leaves the file untouched in git.
        The JSON goes to a hidden sibling file first, which then replaces
        ``path`` in one step.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(metadata.to_dict(), sort_keys=True, indent=2, ensure_ascii=False)

        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            f.write(text + "\n")
        try:
            os.replace(f.name, target)
        except OSError:
            Path(f.name).unlink(missing_ok=True)
            raise

    @staticmethod
    def read(path: str) -> RenameMetadata:
        """Load rename choices saved by :meth:`write`.

        Raises:
            FileNotFoundError: If there is no file at ``path``
            json.JSONDecodeError: If the file is not JSON
            ValueError: If the file has no ``rename`` mapping
        """
        with open(path, encoding="utf-8") as f:
            return RenameMetadata.from_dict(json.load(f))
