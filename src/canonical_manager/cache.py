"""In-memory canonical cache: known packages plus every ingested index entry.

Entries are stored exactly as ingested. Several entries may share a canonical
URL (the same resource published at two versions, or vendored into two
packages); ambiguity is resolved by callers at query time, with ingestion
order as the tie-break.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from canonical_manager.models.index import IndexEntry, SearchParams
    from canonical_manager.models.package import PackageInfo


@dataclass
class Cache:
    # package name → most recently scanned PackageInfo
    packages: dict[str, PackageInfo] = field(default_factory=dict)

    # every ingested entry in package-scan order, then manifest order
    entries: list[IndexEntry] = field(default_factory=list)

    def add_package(self, info: PackageInfo) -> None:
        """Register ``info``, replacing any package of the same name.

        Entries ingested earlier keep referencing the replaced PackageInfo.
        """
        self.packages[info.name] = info

    def add_entries(self, entries: Iterable[IndexEntry]) -> None:
        self.entries.extend(entries)

    def search(self, params: SearchParams) -> list[IndexEntry]:
        """Return entries satisfying every supplied criterion, in ingestion order."""
        return [entry for entry in self.entries if _matches(entry, params)]

    def find_by_url(self, url: str) -> list[IndexEntry]:
        return [entry for entry in self.entries if entry.url == url]

    def package_entries(self, name: str) -> list[IndexEntry]:
        return [entry for entry in self.entries if entry.package.name == name]

    def clear(self) -> None:
        self.packages.clear()
        self.entries.clear()


def _matches(entry: IndexEntry, params: SearchParams) -> bool:
    if params.type is not None and entry.type != params.type:
        return False
    if params.kind is not None and entry.kind != params.kind:
        return False
    if params.version is not None and entry.version != params.version:
        return False
    if params.package is not None and entry.package.id != params.package:
        return False
    return True
