"""Lockfile core class: package management and serialization.

The ``Lockfile`` class is the in-memory form of a ``versolve.lock`` file.
It provides:

- **Package management:** add, get, count, and list locked packages.
- **Provenance:** the top-level requirement edges next to each package's
  own dependency edges.
- **Serialization:** deterministic ``to_dict``, ``to_json``, and ``write``.
- **Preferences:** the locked versions, fed back into the decision policy
  on the next resolution.

Determinism guarantee: packages are sorted by name, edges by their sort
key, all dictionary keys are sorted and no timestamp is written. Two
lockfiles for the same resolved graph are byte-identical.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from packaging.version import InvalidVersion, Version

from versolve.core.lockfile.models import (
    LockedDependency,
    LockedPackage,
    LockfileMetadata,
)


class Lockfile:
    """Resolved package set with per-edge provenance.

    Example::

        lf = Lockfile()
        lf.add_package(LockedPackage(name="requests", version="2.31.0"))
        lf.write(Path("versolve.lock"))
    """

    LOCKFILE_VERSION: str = "1.0"

    def __init__(self) -> None:
        self._packages: dict[str, LockedPackage] = {}
        self._requirements: list[LockedDependency] = []
        self._metadata = LockfileMetadata()

    # -- Package management -------------------------------------------------

    def add_package(self, package: LockedPackage) -> None:
        """Add a locked package, replacing any entry with the same name.

        The metadata ``total_packages`` counter is updated automatically.
        """
        self._packages[package.name] = package
        self._metadata.total_packages = len(self._packages)

    def get_package(self, name: str) -> LockedPackage | None:
        return self._packages.get(name)

    @property
    def package_count(self) -> int:
        return len(self._packages)

    @property
    def package_names(self) -> list[str]:
        """Sorted list of all package names in the lockfile."""
        return sorted(self._packages.keys())

    @property
    def requirements(self) -> list[LockedDependency]:
        """Top-level requirement edges."""
        return list(self._requirements)

    def add_requirement(self, edge: LockedDependency) -> None:
        self._requirements.append(edge)

    def preferences(self) -> dict[str, Version]:
        """Locked versions by name, skipping entries that do not parse."""
        prefs: dict[str, Version] = {}
        for name, package in self._packages.items():
            try:
                prefs[name] = Version(package.version)
            except InvalidVersion:
                continue
        return prefs

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a deterministic dict matching the lockfile schema."""
        packages: dict[str, Any] = {}
        for name in sorted(self._packages.keys()):
            package = self._packages[name]
            entry: dict[str, Any] = {
                "version": package.version,
                "extras": sorted(package.extras),
                "artifact": package.artifact,
                "dependencies": [
                    dep.to_dict()
                    for dep in sorted(package.dependencies, key=lambda d: d.sort_key)
                ],
            }
            if package.requires_python:
                entry["requires_python"] = package.requires_python
            packages[name] = entry

        return {
            "lockfile_version": self.LOCKFILE_VERSION,
            "generated_by": "versolve",
            "requirements": [
                edge.to_dict()
                for edge in sorted(self._requirements, key=lambda d: d.sort_key)
            ],
            "packages": packages,
            "metadata": {
                "total_packages": self._metadata.total_packages,
                "resolution_mode": self._metadata.resolution_mode,
                "prerelease_mode": self._metadata.prerelease_mode,
                "environment_fingerprint": self._metadata.environment_fingerprint,
            },
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True) + "\n"

    def write(self, path: Path) -> None:
        """Write the lockfile as JSON, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")

    # -- Metadata access ----------------------------------------------------

    @property
    def metadata(self) -> LockfileMetadata:
        return self._metadata

    @metadata.setter
    def metadata(self, value: LockfileMetadata) -> None:
        self._metadata = value
