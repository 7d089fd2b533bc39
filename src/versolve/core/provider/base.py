"""Metadata provider interface consumed by the solver.

A provider answers two questions about a package index:

- which versions of a package exist (newest first, finite), and
- what a given version requires, plus the artifact facts the planner
  needs later (built distribution available, source-only, yanked,
  ``Requires-Python``).

Implementations that talk to a real index over the network live outside
this package; ``InMemoryProvider`` is the synchronous implementation used
by tests and by YAML index files.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from packaging.requirements import Requirement
from packaging.version import Version

from versolve.exceptions import VersolveError


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------


class ProviderError(VersolveError):
    """Base class for errors raised by metadata providers."""


class PackageNotFound(ProviderError):
    """The index has no such package (or no such version).

    The solver treats this as "no versions" and backtracks.

    Attributes:
        name: Package name that was looked up.
        hint: Optional remediation hint shown with an unsatisfiable report.
    """

    def __init__(self, name: str, hint: str = "") -> None:
        self.name = name
        self.hint = hint
        super().__init__(f"Package {name!r} was not found in the package index")


class IndexUnreachable(ProviderError):
    """The index could not be contacted. Fatal for the resolution."""


class MalformedMetadata(ProviderError):
    """The index answered with metadata that cannot be interpreted. Fatal."""


# ---------------------------------------------------------------------------
# VersionMetadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionMetadata:
    """Parsed metadata for one released version of a package.

    Attributes:
        version: The version this metadata describes.
        requires: Parsed PEP 508 requirements (``Requires-Dist``).
        requires_python: ``Requires-Python`` specifier text ("" if absent).
        has_wheel: A built distribution compatible with the target exists.
        has_sdist: A source distribution exists.
        yanked: The release was yanked (PEP 592).
    """

    version: Version
    requires: tuple[Requirement, ...] = ()
    requires_python: str = ""
    has_wheel: bool = True
    has_sdist: bool = True
    yanked: bool = False

    @property
    def artifact(self) -> str:
        """Preferred artifact kind: "wheel", "sdist", or "" when neither exists."""
        if self.has_wheel:
            return "wheel"
        if self.has_sdist:
            return "sdist"
        return ""


# ---------------------------------------------------------------------------
# MetadataProvider
# ---------------------------------------------------------------------------


class MetadataProvider(ABC):
    """Pull-based source of versions and per-version metadata.

    Implementations must be safe to call from several threads at once:
    the prefetcher issues lookups from a worker pool.
    """

    @abstractmethod
    def available_versions(self, name: str) -> list[Version]:
        """Return every published version of ``name``, newest first.

        Raises:
            PackageNotFound: If the index does not know ``name``.
            IndexUnreachable: On network failure.
            MalformedMetadata: If the version list cannot be parsed.
        """

    @abstractmethod
    def metadata_for(self, name: str, version: Version) -> VersionMetadata:
        """Return the metadata of one version.

        Raises:
            PackageNotFound: If the version does not exist.
            IndexUnreachable: On network failure.
            MalformedMetadata: If the metadata cannot be parsed.
        """

    def requirements_for(self, name: str, version: Version) -> tuple[Requirement, ...]:
        """Return the requirements of one version (markers not yet evaluated)."""
        return self.metadata_for(name, version).requires
