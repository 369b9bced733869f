"""Index and search FHIR canonical resources distributed in local packages."""

from __future__ import annotations

from canonical_manager.cache import Cache
from canonical_manager.config import Settings
from canonical_manager.errors import CanonicalManagerError, ErrorCode
from canonical_manager.manager import CanonicalManager
from canonical_manager.models import (
    IndexEntry,
    PackageId,
    PackageInfo,
    ScanOutcome,
    ScanStatus,
    SearchParams,
)
from canonical_manager.scanner import scan_package

__all__ = [
    "Cache",
    "CanonicalManager",
    "CanonicalManagerError",
    "ErrorCode",
    "IndexEntry",
    "PackageId",
    "PackageInfo",
    "ScanOutcome",
    "ScanStatus",
    "SearchParams",
    "Settings",
    "scan_package",
]
