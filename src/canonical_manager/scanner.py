"""Package scanning: register a package directory and ingest its indexes.

A failure scanning one package never propagates: the scan is reported as a
``ScanOutcome`` instead, so a batch of packages always runs to completion.
Manifest failures skip the package without touching the cache; index
failures are absorbed per directory and surface as outcome warnings.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from canonical_manager.errors import CanonicalManagerError, ErrorCode
from canonical_manager.fs import EXAMPLES_DIR, PACKAGE_MANIFEST, is_fhir_package
from canonical_manager.models.package import (
    PackageId,
    PackageInfo,
    PackageJson,
    ScanOutcome,
    ScanStatus,
)
from canonical_manager.processor import process_index

if TYPE_CHECKING:
    import os

    from canonical_manager.cache import Cache

log = structlog.get_logger()


def read_package_json(package_path: Path) -> PackageJson:
    """Parse ``package_path/package.json``; raises INVALID_MANIFEST on any failure."""
    manifest_path = package_path / PACKAGE_MANIFEST
    try:
        raw = manifest_path.read_text(encoding="utf-8")
        return PackageJson.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, RecursionError) as exc:
        raise CanonicalManagerError(
            ErrorCode.INVALID_MANIFEST, f"Malformed package manifest {manifest_path}: {exc}"
        ) from exc
    # ValueError covers undecodable bytes and paths with embedded NULs
    except (OSError, ValueError) as exc:
        raise CanonicalManagerError(
            ErrorCode.INVALID_MANIFEST, f"Cannot read {manifest_path}: {exc}"
        ) from exc


def scan_package(package_path: str | os.PathLike[str], cache: Cache) -> ScanOutcome:
    """Register the package at ``package_path`` and ingest its index manifests."""
    path = Path(package_path)
    try:
        package_json = read_package_json(path)
        info = PackageInfo(
            id=PackageId(name=package_json.name, version=package_json.version),
            path=path.resolve(),
            canonical=package_json.canonical,
            fhir_versions=package_json.fhir_versions,
        )
    except CanonicalManagerError as exc:
        log.warning("package_scan_skipped", path=str(path), reason=exc.message)
        return ScanOutcome(path=path, status=ScanStatus.SKIPPED, reason=exc.message)
    except Exception as exc:
        log.warning("package_scan_skipped", path=str(path), exc_info=True)
        return ScanOutcome(
            path=path,
            status=ScanStatus.SKIPPED,
            reason=f"Unexpected error reading {path}: {exc}",
        )
    cache.add_package(info)

    directories = [path]
    examples_path = path / EXAMPLES_DIR
    if is_fhir_package(examples_path):
        directories.append(examples_path)

    total = 0
    warnings: list[str] = []
    for directory in directories:
        try:
            total += process_index(directory, package_json, cache)
        except CanonicalManagerError as exc:
            log.warning(
                "index_processing_failed",
                package=str(info.id),
                directory=str(directory),
                code=exc.code.value,
                reason=exc.message,
            )
            warnings.append(exc.message)
        except Exception as exc:
            log.warning(
                "index_processing_failed",
                package=str(info.id),
                directory=str(directory),
                exc_info=True,
            )
            warnings.append(f"Unexpected error processing {directory}: {exc}")

    log.info("package_scanned", package=str(info.id), path=str(info.path), entries=total)
    return ScanOutcome(
        path=path,
        status=ScanStatus.SCANNED,
        package=info.id,
        entries=total,
        warnings=warnings,
    )
