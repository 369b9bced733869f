"""Registry fetcher: download a package tarball and extract it locally.

The registry speaks the npm metadata format: ``GET <registry>/<name>`` returns
``dist-tags`` and a ``versions`` map whose entries carry ``dist.tarball``.
Extracted packages land at a deterministic path chosen by the caller.
"""

from __future__ import annotations

import asyncio
import io
import re
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Any, Protocol

import httpx
import structlog

from canonical_manager.config import FetcherSettings
from canonical_manager.errors import CanonicalManagerError, ErrorCode
from canonical_manager.fs import PACKAGE_MANIFEST, ensure_dir
from canonical_manager.models.package import PackageId

log = structlog.get_logger()

_PACKAGE_NAME_RE = re.compile(r"^(@[A-Za-z0-9][\w.-]*/)?[A-Za-z0-9][\w.-]*$")
_USER_AGENT = "fhir-canonical-manager"


class PackageFetcherProtocol(Protocol):
    async def fetch(self, name: str, version: str | None, destination: Path) -> PackageId: ...


def parse_package_spec(spec: str) -> tuple[str, str | None]:
    """Split ``name`` or ``name@version`` (scoped names allowed) into its parts."""
    spec = spec.strip()
    # A leading "@" belongs to a scope, not to the version separator
    at = spec.rfind("@")
    if at > 0:
        name, version = spec[:at], spec[at + 1 :]
        if not version:
            raise CanonicalManagerError(
                ErrorCode.INVALID_PACKAGE_SPEC, f"Missing version in package spec: {spec!r}"
            )
    else:
        name, version = spec, None
    if not _PACKAGE_NAME_RE.match(name):
        raise CanonicalManagerError(
            ErrorCode.INVALID_PACKAGE_SPEC, f"Invalid package name: {name!r}"
        )
    return name, version


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared HTTP client used for registry downloads."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            settings.request_timeout_seconds,
            connect=settings.connect_timeout_seconds,
        ),
        follow_redirects=True,
        headers={"User-Agent": _USER_AGENT},
    )


def extract_package(content: bytes, destination: Path) -> None:
    """Extract a gzipped package tarball into ``destination``.

    npm-style tarballs wrap everything in a top-level ``package/`` directory;
    that prefix is stripped. An existing ``destination`` is replaced.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "extract"
        try:
            with tarfile.open(fileobj=io.BytesIO(content), mode="r:*") as archive:
                archive.extractall(root, filter="data")
        except (tarfile.TarError, EOFError) as exc:
            raise CanonicalManagerError(
                ErrorCode.INVALID_PACKAGE_ARCHIVE, f"Cannot extract package archive: {exc}"
            ) from exc

        package_root = root / "package" if (root / "package").is_dir() else root
        if not (package_root / PACKAGE_MANIFEST).is_file():
            raise CanonicalManagerError(
                ErrorCode.INVALID_PACKAGE_ARCHIVE,
                f"Package archive has no {PACKAGE_MANIFEST}",
            )

        if destination.exists():
            shutil.rmtree(destination)
        ensure_dir(destination.parent)
        shutil.move(package_root, destination)


class PackageFetcher:
    """Downloads packages from one registry with a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, registry_url: str) -> None:
        self._client = client
        self._registry_url = registry_url.rstrip("/")

    async def fetch(self, name: str, version: str | None, destination: Path) -> PackageId:
        """Materialize ``name`` (latest when ``version`` is None) at ``destination``."""
        metadata = await self._get_metadata(name)
        resolved = version or metadata.get("dist-tags", {}).get("latest")
        if not resolved:
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_NOT_FOUND, f"No latest version published for {name}"
            )

        versions = metadata.get("versions") or {}
        if versions and resolved not in versions:
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_NOT_FOUND, f"Version {resolved} of {name} not found"
            )
        tarball_url = (versions.get(resolved) or {}).get("dist", {}).get("tarball")
        if not tarball_url:
            tarball_url = self._default_tarball_url(name, resolved)

        log.info("package_fetch_started", package=f"{name}@{resolved}", url=tarball_url)
        response = await self._get(tarball_url, name)
        await asyncio.to_thread(extract_package, response.content, destination)
        log.info("package_fetched", package=f"{name}@{resolved}", path=str(destination))
        return PackageId(name=name, version=resolved)

    def _default_tarball_url(self, name: str, version: str) -> str:
        basename = name.rsplit("/", 1)[-1]
        return f"{self._registry_url}/{name}/-/{basename}-{version}.tgz"

    async def _get_metadata(self, name: str) -> dict[str, Any]:
        response = await self._get(f"{self._registry_url}/{name}", name)
        try:
            metadata = response.json()
        except ValueError as exc:
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_FETCH_FAILED, f"Registry returned invalid JSON for {name}"
            ) from exc
        if not isinstance(metadata, dict):
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_FETCH_FAILED, f"Unexpected registry metadata for {name}"
            )
        return metadata

    async def _get(self, url: str, name: str) -> httpx.Response:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_FETCH_FAILED,
                f"Network error fetching {url}: {exc}",
                recoverable=True,
            ) from exc

        if response.status_code == 404:
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_NOT_FOUND, f"Package {name} not found at {url}"
            )
        if response.is_error:
            raise CanonicalManagerError(
                ErrorCode.PACKAGE_FETCH_FAILED,
                f"HTTP {response.status_code} fetching {url}",
                recoverable=True,
            )
        return response
