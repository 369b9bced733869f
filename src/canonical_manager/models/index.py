from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from canonical_manager.models.package import PackageId, PackageInfo


class IndexFileEntry(BaseModel):
    """Single descriptor in a package's .index.json."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    filename: str | None = None
    resource_type: str | None = Field(default=None, alias="resourceType")
    id: str | None = None
    url: str | None = None
    version: str | None = None
    kind: str | None = None
    type: str | None = None


class IndexFile(BaseModel):
    """Parsed .index.json manifest."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    index_version: int | None = Field(default=None, alias="index-version")
    files: list[IndexFileEntry] = []


class IndexEntry(BaseModel):
    """One indexed resource, attributed to the package it was ingested from."""

    model_config = ConfigDict(frozen=True)

    url: str | None = None
    type: str | None = None  # Resource type, e.g. "StructureDefinition"
    kind: str | None = None
    version: str | None = None
    id: str | None = None
    filename: str | None = None
    path: Path | None = None  # Absolute path of the resource file
    package: PackageInfo


class SearchParams(BaseModel):
    """Structured search criteria. ``None`` fields impose no constraint."""

    model_config = ConfigDict(frozen=True)

    type: str | None = None
    kind: str | None = None
    version: str | None = None
    package: PackageId | None = None
