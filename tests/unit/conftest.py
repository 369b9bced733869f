"""Unit-specific fixtures (no I/O beyond tmp_path)."""

from __future__ import annotations

from pathlib import Path

import pytest

from canonical_manager.cache import Cache
from canonical_manager.models.package import PackageId, PackageInfo


@pytest.fixture()
def cache() -> Cache:
    """Empty cache for unit tests."""
    return Cache()


@pytest.fixture()
def package_info() -> PackageInfo:
    return PackageInfo(
        id=PackageId(name="hl7.fhir.r4.core", version="4.0.1"),
        path=Path("/packages/hl7.fhir.r4.core"),
        canonical="http://hl7.org/fhir",
        fhir_versions=["4.0.1"],
    )
