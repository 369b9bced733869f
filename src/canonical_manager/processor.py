"""Index processing: turn one .index.json into cache entries."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from canonical_manager.errors import CanonicalManagerError, ErrorCode
from canonical_manager.fs import INDEX_FILENAME
from canonical_manager.models.index import IndexEntry, IndexFile

if TYPE_CHECKING:
    from canonical_manager.cache import Cache
    from canonical_manager.models.package import PackageJson

log = structlog.get_logger()


def load_index_file(directory: Path) -> IndexFile:
    """Read and validate ``directory/.index.json``.

    Raises ``CanonicalManagerError(INVALID_INDEX)`` when the file is missing,
    unreadable, not JSON, or does not have the expected shape.
    """
    index_path = directory / INDEX_FILENAME
    try:
        raw = index_path.read_text(encoding="utf-8")
        return IndexFile.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, RecursionError) as exc:
        raise CanonicalManagerError(
            ErrorCode.INVALID_INDEX, f"Malformed index manifest {index_path}: {exc}"
        ) from exc
    except (OSError, ValueError) as exc:
        raise CanonicalManagerError(
            ErrorCode.INVALID_INDEX, f"Cannot read {index_path}: {exc}"
        ) from exc


def resource_path(base: Path, filename: str | None) -> Path | None:
    """Return the file ``filename`` names inside ``base``, or None.

    Filenames that are absolute or climb out of ``base`` (``../``, symlinks)
    yield None, as do filenames the OS cannot represent.
    """
    if not filename:
        return None
    try:
        candidate = (base / filename).resolve()
    except (OSError, ValueError):
        return None
    if not candidate.is_relative_to(base):
        log.warning("index_filename_outside_package", base=str(base), filename=filename)
        return None
    return candidate


def process_index(directory: Path, package_json: PackageJson, cache: Cache) -> int:
    """Append one entry per descriptor of ``directory``'s index manifest.

    The whole manifest is validated before anything is appended, so a broken
    manifest leaves the cache untouched. Returns the number of entries added.
    """
    package = cache.packages.get(package_json.name)
    if package is None:
        raise CanonicalManagerError(
            ErrorCode.PACKAGE_NOT_FOUND,
            f"Package {package_json.name!r} must be registered before its index is processed",
        )

    index = load_index_file(directory)
    base = directory.resolve()
    entries = [
        IndexEntry(
            url=item.url,
            type=item.resource_type if item.resource_type is not None else item.type,
            kind=item.kind,
            version=item.version,
            id=item.id,
            filename=item.filename,
            path=resource_path(base, item.filename),
            package=package,
        )
        for item in index.files
    ]
    cache.add_entries(entries)
    log.debug(
        "index_processed",
        package=str(package.id),
        directory=str(directory),
        entries=len(entries),
    )
    return len(entries)
