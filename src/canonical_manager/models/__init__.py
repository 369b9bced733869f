from __future__ import annotations

from canonical_manager.models.index import IndexEntry, IndexFile, IndexFileEntry, SearchParams
from canonical_manager.models.package import (
    PackageId,
    PackageInfo,
    PackageJson,
    ScanOutcome,
    ScanStatus,
)

__all__ = [
    # package
    "PackageId",
    "PackageInfo",
    "PackageJson",
    "ScanOutcome",
    "ScanStatus",
    # index
    "IndexEntry",
    "IndexFile",
    "IndexFileEntry",
    "SearchParams",
]
