"""Shared fixtures: on-disk package directories and in-memory package tarballs."""

from __future__ import annotations

import io
import json
import tarfile
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    PackageFactory = Callable[..., Path]
    TarballFactory = Callable[..., bytes]


def _resource_for(descriptor: dict[str, Any]) -> dict[str, Any]:
    resource: dict[str, Any] = {"resourceType": descriptor.get("resourceType", "Basic")}
    for key in ("id", "url", "version", "kind", "type"):
        if descriptor.get(key) is not None:
            resource[key] = descriptor[key]
    return resource


def _write_index(directory: Path, descriptors: list[dict[str, Any]]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / ".index.json").write_text(
        json.dumps({"index-version": 1, "files": descriptors}), encoding="utf-8"
    )
    for descriptor in descriptors:
        filename = descriptor.get("filename")
        if filename:
            (directory / filename).write_text(
                json.dumps(_resource_for(descriptor)), encoding="utf-8"
            )


def _structure_definition(
    url: str, version: str = "1.0.0", kind: str = "resource", **extra: Any
) -> dict[str, Any]:
    rid = url.rstrip("/").rsplit("/", 1)[-1]
    return {
        "filename": f"StructureDefinition-{rid}-{version}.json",
        "resourceType": "StructureDefinition",
        "id": rid,
        "url": url,
        "version": version,
        "kind": kind,
        "type": rid,
        **extra,
    }


@pytest.fixture()
def sd() -> Callable[..., dict[str, Any]]:
    """StructureDefinition descriptor factory, shaped like a real .index.json entry."""
    return _structure_definition


@pytest.fixture()
def make_package(tmp_path: Path) -> PackageFactory:
    """Write a package directory under ``tmp_path/packages`` and return its path."""

    def _make(
        name: str = "test.pkg",
        version: str = "1.0.0",
        *,
        entries: list[dict[str, Any]] | None = None,
        examples: list[dict[str, Any]] | None = None,
        canonical: str | None = None,
        fhir_versions: list[str] | None = None,
        dirname: str | None = None,
        manifest: str | None = None,
    ) -> Path:
        path = tmp_path / "packages" / (dirname or f"{name}#{version}")
        path.mkdir(parents=True, exist_ok=True)
        if manifest is not None:
            (path / "package.json").write_text(manifest, encoding="utf-8")
        else:
            data: dict[str, Any] = {"name": name, "version": version}
            if canonical is not None:
                data["canonical"] = canonical
            if fhir_versions is not None:
                data["fhirVersions"] = fhir_versions
            (path / "package.json").write_text(json.dumps(data), encoding="utf-8")
        _write_index(path, entries or [])
        if examples is not None:
            _write_index(path / "examples", examples)
        return path

    return _make


@pytest.fixture()
def make_tarball() -> TarballFactory:
    """Build an npm-style ``.tgz`` in memory with files under ``package/``."""

    def _make(
        name: str,
        version: str,
        *,
        entries: list[dict[str, Any]] | None = None,
        prefix: str = "package/",
    ) -> bytes:
        descriptors = entries or []
        files: dict[str, Any] = {
            "package.json": {"name": name, "version": version, "fhirVersions": ["4.0.1"]},
            ".index.json": {"index-version": 1, "files": descriptors},
        }
        for descriptor in descriptors:
            if descriptor.get("filename"):
                files[descriptor["filename"]] = _resource_for(descriptor)

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            for filename, content in files.items():
                payload = json.dumps(content).encode("utf-8")
                info = tarfile.TarInfo(name=f"{prefix}{filename}")
                info.size = len(payload)
                archive.addfile(info, io.BytesIO(payload))
        return buffer.getvalue()

    return _make
