"""Filesystem checks used by the scanner and the manager."""

from __future__ import annotations

import os
from pathlib import Path

INDEX_FILENAME = ".index.json"
PACKAGE_MANIFEST = "package.json"
EXAMPLES_DIR = "examples"


def file_exists(path: str | os.PathLike[str]) -> bool:
    """Return True if ``path`` exists. Access errors count as missing."""
    if not os.fspath(path):
        return False
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def ensure_dir(path: str | os.PathLike[str]) -> None:
    """Create ``path`` and any missing parents.

    An existing directory, or a file occupying the path, is left as is.
    """
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except FileExistsError:
        pass


def is_fhir_package(path: str | os.PathLike[str]) -> bool:
    """True iff ``path`` holds an index manifest directly beneath it."""
    if not os.fspath(path):
        return False
    return file_exists(Path(path) / INDEX_FILENAME)
