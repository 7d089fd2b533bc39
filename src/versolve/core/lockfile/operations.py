"""Lockfile operations: deserialization, validation, and diffing.

These functions are attached to the ``Lockfile`` class at import time (in
``__init__.py``) so each source file stays focused while callers see a
single API.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from versolve.core.lockfile.models import (
    LockedDependency,
    LockedPackage,
    LockfileMetadata,
)
from versolve.exceptions import LockfileError


def _edge_from_dict(entry: Any, where: str) -> LockedDependency:
    if not isinstance(entry, dict) or "name" not in entry:
        raise LockfileError(f"Malformed dependency entry in {where}: {entry!r}")
    return LockedDependency(
        name=str(entry["name"]),
        specifier=str(entry.get("specifier", "")),
        marker=entry.get("marker"),
        extra=entry.get("extra"),
        via=entry.get("via"),
    )


def _from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Deserialize a lockfile from the dict produced by ``to_dict()``.

    Missing optional fields take their defaults.

    Raises:
        LockfileError: If the structure does not match the schema.
    """
    if not isinstance(data, dict):
        raise LockfileError("Lockfile root must be a JSON object")
    lf = cls()

    packages = data.get("packages", {})
    if not isinstance(packages, dict):
        raise LockfileError("'packages' must be a JSON object")
    for name, entry in packages.items():
        if not isinstance(entry, dict):
            raise LockfileError(f"Entry for {name!r} must be a JSON object")
        lf._packages[name] = LockedPackage(
            name=name,
            version=str(entry.get("version", "")),
            extras=list(entry.get("extras", [])),
            dependencies=[
                _edge_from_dict(dep, repr(name)) for dep in entry.get("dependencies", [])
            ],
            artifact=str(entry.get("artifact", "wheel")),
            requires_python=str(entry.get("requires_python", "")),
        )

    lf._requirements = [
        _edge_from_dict(edge, "requirements") for edge in data.get("requirements", [])
    ]

    meta = data.get("metadata", {})
    if not isinstance(meta, dict):
        raise LockfileError("'metadata' must be a JSON object")
    lf._metadata = LockfileMetadata(
        total_packages=meta.get("total_packages", len(lf._packages)),
        resolution_mode=meta.get("resolution_mode", "newest"),
        prerelease_mode=meta.get("prerelease_mode", "if-necessary-or-explicit"),
        environment_fingerprint=meta.get("environment_fingerprint", ""),
    )
    return lf


def _from_json(cls: type, json_str: str) -> Any:
    """Deserialize from a JSON string.

    Raises:
        LockfileError: If the string is not valid JSON or not a lockfile.
    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise LockfileError(f"Lockfile is not valid JSON: {exc}") from exc
    return cls.from_dict(data)


def _read(cls: type, path: Path) -> Any:
    """Read a lockfile from disk.

    Raises:
        LockfileError: If the file cannot be read or parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"Cannot read lockfile {path}: {exc}") from exc
    return cls.from_json(text)


def _check_edge(edge: LockedDependency, source: str, packages: dict, errors: list[str]) -> None:
    target = packages.get(edge.name)
    if target is None:
        errors.append(f"{source} depends on {edge.name!r} which is not in the lockfile")
        return
    if edge.extra and edge.extra not in target.extras:
        errors.append(
            f"{source} requests extra {edge.extra!r} of {edge.name!r} "
            f"which is not activated in the lockfile"
        )
    try:
        specifier = SpecifierSet(edge.specifier)
        version = Version(target.version)
    except (InvalidSpecifier, InvalidVersion):
        return  # reported by the version check
    if not specifier.contains(version, prereleases=True):
        errors.append(
            f"{source} requires {edge.name}{edge.specifier} but "
            f"{edge.name}=={target.version} is locked"
        )


def _validate(self: Any) -> list[str]:
    """Validate the lockfile for internal consistency.

    Checks:

    1. **Dependency completeness:** every edge (top-level or from a
       package) targets a package in the lockfile, with the requested
       extra activated and a version inside the edge's specifier.
    2. **Versions:** every package has a non-empty, valid version.
    3. **Metadata consistency:** ``total_packages`` matches the entries.

    Dependency cycles are legal and not reported.

    Returns:
        Validation error messages. Empty means the lockfile is valid.
    """
    errors: list[str] = []

    for edge in self._requirements:
        _check_edge(edge, "root", self._packages, errors)
    for name in sorted(self._packages):
        for edge in self._packages[name].dependencies:
            _check_edge(edge, repr(name), self._packages, errors)

    for name in sorted(self._packages):
        version = self._packages[name].version
        if not version:
            errors.append(f"Package {name!r} has empty version string")
            continue
        try:
            Version(version)
        except InvalidVersion:
            errors.append(f"Package {name!r} has invalid version {version!r}")

    if self._metadata.total_packages != len(self._packages):
        errors.append(
            f"Metadata total_packages ({self._metadata.total_packages}) "
            f"does not match actual count ({len(self._packages)})"
        )
    return errors


def _diff(self: Any, other: Any) -> dict[str, Any]:
    """Compare two lockfiles.

    - **added**: packages in ``other`` but not in ``self``.
    - **removed**: packages in ``self`` but not in ``other``.
    - **changed**: packages in both whose version, extras or artifact
      differ.

    Returns:
        Dict with keys 'added', 'removed', 'changed'.
    """
    self_names = set(self._packages.keys())
    other_names = set(other._packages.keys())

    changes: list[dict[str, Any]] = []
    for name in sorted(self_names & other_names):
        old = self._packages[name]
        new = other._packages[name]
        if old.version != new.version:
            changes.append({"name": name, "field": "version", "old": old.version, "new": new.version})
        if sorted(old.extras) != sorted(new.extras):
            changes.append(
                {"name": name, "field": "extras", "old": sorted(old.extras), "new": sorted(new.extras)}
            )
        if old.artifact != new.artifact:
            changes.append({"name": name, "field": "artifact", "old": old.artifact, "new": new.artifact})

    return {
        "added": sorted(other_names - self_names),
        "removed": sorted(self_names - other_names),
        "changed": changes,
    }
