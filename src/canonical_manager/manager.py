"""Canonical manager: the public façade over fetching, scanning and searching.

Typical use::

    settings = Settings(packages=["hl7.fhir.r4.core@4.0.1"], working_dir="./tmp")
    async with CanonicalManager(settings) as manager:
        profiles = manager.search_entries(SearchParams(type="StructureDefinition"))

One manager owns one Cache. ``init()`` fills it, ``destroy()`` drops it; a
destroyed manager must not be reused.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog

from canonical_manager.cache import Cache
from canonical_manager.config import Settings
from canonical_manager.errors import CanonicalManagerError, ErrorCode
from canonical_manager.fetcher import PackageFetcher, build_http_client, parse_package_spec
from canonical_manager.fs import ensure_dir
from canonical_manager.models.index import SearchParams
from canonical_manager.models.package import PackageId, ScanOutcome, ScanStatus
from canonical_manager.scanner import read_package_json, scan_package

if TYPE_CHECKING:
    from pathlib import Path

    import httpx

    from canonical_manager.fetcher import PackageFetcherProtocol
    from canonical_manager.models.index import IndexEntry
    from canonical_manager.models.package import PackageInfo

log = structlog.get_logger()


class CanonicalManager:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        fetcher: PackageFetcherProtocol | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._fetcher = fetcher
        self._http_client = http_client
        self._owns_client = False
        self._cache: Cache | None = None
        self._outcomes: list[ScanOutcome] = []

    async def __aenter__(self) -> CanonicalManager:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.destroy()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> list[ScanOutcome]:
        """Fetch missing packages and scan every configured package, in order.

        Never fails because of a single package: fetch and scan failures are
        reported as SKIPPED outcomes. Calling ``init()`` again is a no-op.
        """
        if self._cache is not None:
            return list(self._outcomes)

        cache = Cache()
        ensure_dir(self.settings.packages_dir)
        outcomes = [await self._ensure_and_scan(spec, cache) for spec in self.settings.packages]

        self._cache = cache
        self._outcomes = outcomes
        log.info(
            "manager_initialized",
            packages=len(cache.packages),
            entries=len(cache.entries),
            skipped=sum(1 for outcome in outcomes if not outcome.ok),
        )
        return list(outcomes)

    async def destroy(self) -> None:
        """Release the cache and close the HTTP client if this manager created it."""
        if self._cache is not None:
            self._cache.clear()
            self._cache = None
        self._outcomes = []
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._fetcher = None
            self._owns_client = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def packages(self) -> list[PackageInfo]:
        return list(self._require_cache().packages.values())

    def outcomes(self) -> list[ScanOutcome]:
        self._require_cache()
        return list(self._outcomes)

    def failed_packages(self) -> list[ScanOutcome]:
        """Configured packages that contributed nothing because fetch or scan failed."""
        return [outcome for outcome in self.outcomes() if not outcome.ok]

    def search_entries(
        self,
        params: SearchParams | None = None,
        *,
        url: str | None = None,
        limit: int | None = None,
    ) -> list[IndexEntry]:
        """Structured search, optionally narrowed by a case-insensitive URL fragment."""
        results = self._require_cache().search(params or SearchParams())
        if url:
            needle = url.lower()
            results = [entry for entry in results if entry.url and needle in entry.url.lower()]
        if limit is not None and limit > 0:
            results = results[:limit]
        return results

    def resolve(
        self,
        canonical: str,
        *,
        package: PackageId | str | None = None,
        version: str | None = None,
    ) -> IndexEntry:
        """Return the entry for an exact canonical URL.

        Accepts ``url|version``. When several entries remain, the first
        ingested wins, so configured package order sets precedence.
        """
        url, _, pinned = canonical.partition("|")
        candidates = self._require_cache().find_by_url(url)
        for wanted in (pinned, version):
            if wanted:
                candidates = [entry for entry in candidates if entry.version == wanted]
        if isinstance(package, PackageId):
            candidates = [entry for entry in candidates if entry.package.id == package]
        elif package is not None:
            candidates = [entry for entry in candidates if entry.package.name == package]

        if not candidates:
            raise CanonicalManagerError(
                ErrorCode.RESOURCE_NOT_FOUND, f"No resource found for canonical {canonical!r}"
            )
        return candidates[0]

    def read(self, entry: IndexEntry) -> dict[str, Any]:
        """Load the JSON resource an index entry points at."""
        if entry.path is None:
            raise CanonicalManagerError(
                ErrorCode.RESOURCE_READ_FAILED, f"Entry {entry.url!r} has no resource file"
            )
        try:
            resource = json.loads(entry.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CanonicalManagerError(
                ErrorCode.RESOURCE_READ_FAILED, f"Cannot read resource {entry.path}: {exc}"
            ) from exc
        if not isinstance(resource, dict):
            raise CanonicalManagerError(
                ErrorCode.RESOURCE_READ_FAILED, f"Resource {entry.path} is not a JSON object"
            )
        return resource

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_cache(self) -> Cache:
        if self._cache is None:
            raise CanonicalManagerError(
                ErrorCode.MANAGER_NOT_INITIALIZED, "CanonicalManager.init() has not completed"
            )
        return self._cache

    def _get_fetcher(self) -> PackageFetcherProtocol:
        if self._fetcher is None:
            if self._http_client is None:
                self._http_client = build_http_client(self.settings.fetcher)
                self._owns_client = True
            self._fetcher = PackageFetcher(self._http_client, self.settings.registry.url)
        return self._fetcher

    async def _ensure_and_scan(self, spec: str, cache: Cache) -> ScanOutcome:
        packages_dir = self.settings.packages_dir
        try:
            name, version = parse_package_spec(spec)
        except CanonicalManagerError as exc:
            log.warning("package_spec_invalid", spec=spec, reason=exc.message)
            return ScanOutcome(path=packages_dir, status=ScanStatus.SKIPPED, reason=exc.message)

        path = packages_dir / name
        if not _is_present(path, version):
            try:
                await self._get_fetcher().fetch(name, version, path)
            except CanonicalManagerError as exc:
                log.warning(
                    "package_fetch_failed",
                    package=spec,
                    code=exc.code.value,
                    recoverable=exc.recoverable,
                    reason=exc.message,
                )
                return ScanOutcome(path=path, status=ScanStatus.SKIPPED, reason=exc.message)
            except Exception as exc:
                log.warning("package_fetch_failed", package=spec, exc_info=True)
                return ScanOutcome(
                    path=path,
                    status=ScanStatus.SKIPPED,
                    reason=f"Unexpected error fetching {spec}: {exc}",
                )

        return scan_package(path, cache)


def _is_present(path: Path, version: str | None) -> bool:
    """True if a package is already extracted at ``path`` (at ``version``, if pinned)."""
    try:
        manifest = read_package_json(path)
    except CanonicalManagerError:
        return False
    return version is None or manifest.version == version
