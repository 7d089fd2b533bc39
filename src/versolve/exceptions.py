"""versolve exception hierarchy.

All public exceptions inherit from VersolveError, giving callers a single
base class to catch when they want to handle any versolve-specific failure
without swallowing unrelated errors.
"""

from __future__ import annotations


class VersolveError(Exception):
    """Base exception for all versolve errors."""


class RequirementError(VersolveError):
    """Raised when a requirement, specifier or version string is invalid.

    Covers malformed PEP 508 requirement lines, unparsable version
    specifiers, and invalid environment marker expressions.
    """


class ConfigError(VersolveError):
    """Raised when a project configuration file is invalid.

    Covers unreadable YAML, unknown keys, and values outside the
    recognized set (for example an unknown resolution mode).
    """


class ResolutionError(VersolveError):
    """Raised when dependency resolution cannot produce a result."""


class MetadataUnavailable(ResolutionError):
    """Raised when the metadata provider cannot answer for a subject.

    Network and parse failures are fatal for the whole resolution. They
    are never reinterpreted as "no versions", which would turn a transient
    outage into a misleading unsatisfiable report.

    Attributes:
        name: Package name the lookup was for.
        version: Version string, or None for a version-list lookup.
    """

    def __init__(self, name: str, version: str | None, reason: str) -> None:
        self.name = name
        self.version = version
        self.reason = reason
        target = name if version is None else f"{name}=={version}"
        super().__init__(f"Metadata for {target} is unavailable: {reason}")


class Cancelled(ResolutionError):
    """Raised when cooperative cancellation is observed at a checkpoint."""


class CacheCorruption(VersolveError):
    """Raised when a cache entry fails integrity or fingerprint validation.

    Callers treat this as a cache miss; it is never fatal.

    Attributes:
        digest: The cache key digest of the corrupt entry.
    """

    def __init__(self, digest: str, reason: str) -> None:
        self.digest = digest
        self.reason = reason
        super().__init__(f"Cache entry {digest} is corrupt: {reason}")


class LockfileError(VersolveError):
    """Raised for lockfile read, parse or consistency failures."""


class PlanError(VersolveError):
    """Raised when an installation plan cannot be derived.

    Covers resolved packages that publish neither a built distribution
    nor a source distribution, and failed artifact materialization.
    """


class Unsatisfiable(ResolutionError):
    """Raised when no assignment satisfies the requirements.

    Carries the explanation produced by unfolding the derivation graph of
    the root-level failure. Not retried; surfaced verbatim to the user.

    Attributes:
        explanation: Ordered ``ExplanationLine`` entries.
        hints: Additional remediation hints (may be empty).
        failure_id: Arena index of the failing incompatibility.
        store: The incompatibility store the failure was derived in.
    """

    def __init__(
        self,
        explanation: list,
        hints: list[str] | None = None,
        failure_id: int | None = None,
        store: object | None = None,
    ) -> None:
        self.explanation = list(explanation)
        self.hints = list(hints or [])
        self.failure_id = failure_id
        self.store = store
        super().__init__(self.report())

    def report(self) -> str:
        """Render the explanation and hints as a multi-line string."""
        lines = [str(line) for line in self.explanation]
        if self.hints:
            lines.append("")
            lines.extend(f"hint: {hint}" for hint in self.hints)
        return "\n".join(lines)
