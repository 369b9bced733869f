from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class PackageId(BaseModel):
    """Name and version uniquely identifying one package release."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


class PackageInfo(BaseModel):
    """A scanned package as registered in the cache."""

    model_config = ConfigDict(frozen=True)

    id: PackageId
    path: Path  # Absolute package root
    canonical: str | None = None  # Base canonical URL prefix
    fhir_versions: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.id.name

    @property
    def version(self) -> str:
        return self.id.version


class PackageJson(BaseModel):
    """The subset of package.json read by the scanner."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    version: str
    canonical: str | None = None
    fhir_versions: list[str] = Field(default=[], alias="fhirVersions")
    dependencies: dict[str, str] = {}


class ScanStatus(StrEnum):
    SCANNED = "scanned"
    SKIPPED = "skipped"


class ScanOutcome(BaseModel):
    """Result of scanning (or failing to fetch) one package directory."""

    path: Path
    status: ScanStatus
    package: PackageId | None = None
    entries: int = 0  # Index entries appended to the cache
    reason: str | None = None  # Why the package was skipped
    warnings: list[str] = []  # Absorbed index failures of a scanned package

    @property
    def ok(self) -> bool:
        return self.status is ScanStatus.SCANNED
