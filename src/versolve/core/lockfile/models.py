"""Lockfile data models: LockedDependency, LockedPackage and LockfileMetadata.

Plain data holders with no behaviour, safe to import from anywhere in
the package without circular-import concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# LockedDependency: one requirement edge with its provenance
# ---------------------------------------------------------------------------


@dataclass
class LockedDependency:
    """A requirement edge recorded in the lockfile.

    Attributes:
        name: Required package name.
        specifier: Specifier as written ("" for any version).
        marker: Marker that gated the requirement, if any.
        extra: Extra requested on the required package, if any.
        via: Extra of the requiring package that contributed the edge.
    """

    name: str
    specifier: str = ""
    marker: str | None = None
    extra: str | None = None
    via: str | None = None

    @property
    def sort_key(self) -> tuple:
        return (self.via or "", self.name, self.extra or "", self.specifier, self.marker or "")

    def to_dict(self) -> dict:
        entry: dict = {"name": self.name, "specifier": self.specifier}
        if self.marker:
            entry["marker"] = self.marker
        if self.extra:
            entry["extra"] = self.extra
        if self.via:
            entry["via"] = self.via
        return entry


# ---------------------------------------------------------------------------
# LockedPackage: a single entry in the lockfile
# ---------------------------------------------------------------------------


@dataclass
class LockedPackage:
    """A single package entry in the lockfile.

    Attributes:
        name: Canonical package name (e.g., "requests").
        version: Resolved version (e.g., "2.31.0").
        extras: Extras activated on the package.
        dependencies: Requirement edges leaving the package.
        artifact: "wheel", "sdist", or "" when neither was published.
        requires_python: The version's Requires-Python ("" if absent).
    """

    name: str
    version: str
    extras: list[str] = field(default_factory=list)
    dependencies: list[LockedDependency] = field(default_factory=list)
    artifact: str = "wheel"
    requires_python: str = ""


# ---------------------------------------------------------------------------
# LockfileMetadata: top-level metadata section
# ---------------------------------------------------------------------------


@dataclass
class LockfileMetadata:
    """Metadata section of the lockfile.

    Attributes:
        total_packages: Expected number of package entries. Used during
            validation to detect incomplete writes.
        resolution_mode: "newest" or "lowest".
        prerelease_mode: The pre-release policy the lock was produced with.
        environment_fingerprint: Fingerprint of the target environment.
    """

    total_packages: int = 0
    resolution_mode: str = "newest"
    prerelease_mode: str = "if-necessary-or-explicit"
    environment_fingerprint: str = ""
