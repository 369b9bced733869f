"""Integration test fixtures.

Provides a mocked npm-style registry (respx) that serves real in-memory
tarballs, and Settings pointing the manager at it with a tmp working dir.
Package-directory and tarball factories come from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest
import respx

from canonical_manager.config import Settings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

REGISTRY = "https://registry.example.org/pkgs"


@pytest.fixture()
def registry() -> Iterator[respx.MockRouter]:
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def publish(registry: respx.MockRouter, make_tarball) -> Callable[..., dict[str, respx.Route]]:
    """Publish ``name`` at the given versions; the last one becomes ``latest``.

    Returns the tarball routes keyed by version so tests can assert downloads.
    """

    def _publish(name: str, versions: dict[str, list[dict[str, Any]]]) -> dict[str, respx.Route]:
        routes: dict[str, respx.Route] = {}
        metadata: dict[str, Any] = {"name": name, "dist-tags": {}, "versions": {}}
        for version, entries in versions.items():
            tarball_url = f"{REGISTRY}/{name}/-/{name}-{version}.tgz"
            metadata["versions"][version] = {"dist": {"tarball": tarball_url}}
            metadata["dist-tags"]["latest"] = version
            routes[version] = registry.get(tarball_url).mock(
                return_value=httpx.Response(200, content=make_tarball(name, version, entries=entries))
            )
        registry.get(f"{REGISTRY}/{name}").mock(return_value=httpx.Response(200, json=metadata))
        return routes

    return _publish


@pytest.fixture()
def settings_for(tmp_path: Path) -> Callable[..., Settings]:
    def _settings(*packages: str) -> Settings:
        return Settings(
            packages=list(packages),
            working_dir=str(tmp_path / "work"),
            registry={"url": REGISTRY},
        )

    return _settings
