"""In-memory metadata provider backed by a mapping or a YAML index file.

Index file format::

    packages:
      requests:
        "2.31.0":
          requires: ["urllib3>=1.21,<3", "idna>=2.5,<4"]
          requires_python: ">=3.7"
          wheel: true
          sdist: true
          yanked: false
        "2.30.0": ["urllib3"]        # shorthand: only requirements

A version entry may be a mapping (full form), a list of requirement
strings (shorthand), or null (no requirements).
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml
from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from versolve.core.provider.base import (
    MalformedMetadata,
    MetadataProvider,
    PackageNotFound,
    VersionMetadata,
)
from versolve.exceptions import ConfigError

_OFFLINE_HINT = (
    "Packages were unavailable because index lookups were disabled "
    "(offline mode); run without --offline to consult the index"
)

_ENTRY_KEYS = {"requires", "requires_python", "wheel", "sdist", "yanked"}


class InMemoryProvider(MetadataProvider):
    """Synchronous provider over an in-memory package universe.

    Entries are kept in their raw form and parsed on lookup, so a
    malformed entry surfaces as ``MalformedMetadata`` exactly when the
    solver asks for it, the way a remote index would behave.

    Args:
        packages: Mapping of package name -> {version string -> entry}.
        offline: If True, every lookup fails with ``PackageNotFound``
            carrying an "index lookups disabled" hint.

    Attributes:
        calls: Log of ``("versions", name)`` and ``("metadata", name,
            version)`` lookups, in call order. Used by tests to observe
            prefetching and caching behaviour.
    """

    def __init__(
        self,
        packages: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        offline: bool = False,
    ) -> None:
        self._packages: dict[str, dict[str, Any]] = {}
        self._offline = offline
        self._lock = threading.Lock()
        self.calls: list[tuple[str, ...]] = []
        for name, versions in (packages or {}).items():
            for version, entry in (versions or {}).items():
                self._packages.setdefault(canonicalize_name(name), {})[str(version)] = entry

    # -- Construction helpers -----------------------------------------------

    @classmethod
    def from_yaml(cls, path: Path, *, offline: bool = False) -> InMemoryProvider:
        """Load an index file.

        Raises:
            ConfigError: If the file cannot be read or has the wrong shape.
        """
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read index file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Index file {path} is not valid YAML: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict) or not isinstance(data.get("packages", {}), dict):
            raise ConfigError(f"Index file {path} must contain a 'packages' mapping")
        return cls(data.get("packages") or {}, offline=offline)

    def add(
        self,
        name: str,
        version: str,
        requires: Iterable[str] = (),
        *,
        requires_python: str = "",
        wheel: bool = True,
        sdist: bool = True,
        yanked: bool = False,
    ) -> None:
        """Register one version (test convenience)."""
        self._packages.setdefault(canonicalize_name(name), {})[version] = {
            "requires": list(requires),
            "requires_python": requires_python,
            "wheel": wheel,
            "sdist": sdist,
            "yanked": yanked,
        }

    # -- MetadataProvider ---------------------------------------------------

    def available_versions(self, name: str) -> list[Version]:
        self._record(("versions", name))
        entries = self._entries(name)
        try:
            versions = [Version(raw) for raw in entries]
        except InvalidVersion as exc:
            raise MalformedMetadata(f"Invalid version listed for {name!r}: {exc}") from exc
        return sorted(versions, reverse=True)

    def metadata_for(self, name: str, version: Version) -> VersionMetadata:
        self._record(("metadata", name, str(version)))
        entries = self._entries(name)
        for raw, entry in entries.items():
            try:
                if Version(raw) == version:
                    return self._parse_entry(name, version, entry)
            except InvalidVersion as exc:
                raise MalformedMetadata(f"Invalid version listed for {name!r}: {exc}") from exc
        raise PackageNotFound(f"{name}=={version}")

    # -- Internals ----------------------------------------------------------

    def _record(self, call: tuple[str, ...]) -> None:
        with self._lock:
            self.calls.append(call)

    def _entries(self, name: str) -> dict[str, Any]:
        if self._offline:
            raise PackageNotFound(name, hint=_OFFLINE_HINT)
        entries = self._packages.get(canonicalize_name(name))
        if not entries:
            raise PackageNotFound(name)
        return entries

    @staticmethod
    def _parse_entry(name: str, version: Version, entry: Any) -> VersionMetadata:
        if entry is None:
            entry = {}
        elif isinstance(entry, (list, tuple)):
            entry = {"requires": list(entry)}
        elif not isinstance(entry, dict):
            raise MalformedMetadata(
                f"Metadata for {name}=={version} must be a mapping or a list"
            )

        unknown = set(entry) - _ENTRY_KEYS
        if unknown:
            raise MalformedMetadata(
                f"Unknown metadata keys for {name}=={version}: {sorted(unknown)}"
            )

        requires: list[Requirement] = []
        for line in entry.get("requires") or []:
            try:
                requires.append(Requirement(str(line)))
            except InvalidRequirement as exc:
                raise MalformedMetadata(
                    f"Invalid requirement {line!r} in {name}=={version}: {exc}"
                ) from exc

        return VersionMetadata(
            version=version,
            requires=tuple(requires),
            requires_python=str(entry.get("requires_python") or ""),
            has_wheel=bool(entry.get("wheel", True)),
            has_sdist=bool(entry.get("sdist", True)),
            yanked=bool(entry.get("yanked", False)),
        )
