"""Conversion of PEP 440 specifiers into ``VersionRange`` values.

Each clause of a ``SpecifierSet`` maps to a range and the clauses are
intersected (comma means "and"). Supported operators:

- ``==V`` / ``!=V``: ``V`` together with its local variants (``V+cpu``)
  unless ``V`` carries a local label itself, or the complement.
- ``==V.*`` / ``!=V.*``: the prefix range ``[V.dev0, next(V).dev0)``.
- ``<V``: when ``V`` is a final or post release the upper bound is
  ``V.dev0`` (``V.postN.dev0``) so that its own pre-releases are excluded.
- ``<=V``: everything up to ``V`` and its local variants.
- ``>V``: above ``V`` skipping its local variants and, unless ``V`` is
  itself a post or dev release, its post-releases.
- ``>=V``: a plain bound.
- ``~=V``: ``>=V`` intersected with the prefix range of ``V`` minus its
  last release segment.
- ``===V``: arbitrary equality, exactly ``V`` when ``V`` parses.
"""

from __future__ import annotations

from enum import Enum

from packaging.specifiers import InvalidSpecifier, Specifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from versolve.core.version.ranges import VersionRange
from versolve.exceptions import RequirementError


class PrereleaseMode(str, Enum):
    """Policy deciding when pre-release versions are candidates.

    DISALLOW: never select a pre-release.
    ALLOW: pre-releases compete with final releases.
    IF_NECESSARY: select a pre-release only when no final release of the
        package lies in its current range.
    EXPLICIT: select pre-releases only for packages whose requirement
        specifiers name a pre-release version.
    IF_NECESSARY_OR_EXPLICIT: either of the two previous rules.
    """

    DISALLOW = "disallow"
    ALLOW = "allow"
    IF_NECESSARY = "if-necessary"
    EXPLICIT = "explicit"
    IF_NECESSARY_OR_EXPLICIT = "if-necessary-or-explicit"


def parse_version(text: str) -> Version:
    """Parse a version string, raising ``RequirementError`` if it is invalid."""
    try:
        return Version(text)
    except InvalidVersion as exc:
        raise RequirementError(f"Invalid version: {text!r}") from exc


def parse_specifier(text: str) -> SpecifierSet:
    """Parse a comma-separated specifier string such as ``>=1.0,<2``."""
    try:
        return SpecifierSet(text)
    except InvalidSpecifier as exc:
        raise RequirementError(f"Invalid version specifier: {text!r}") from exc


def _release_version(epoch: int, release: tuple[int, ...], suffix: str = "") -> Version:
    text = ".".join(str(part) for part in release) + suffix
    if epoch:
        text = f"{epoch}!{text}"
    return Version(text)


def _prefix_range(epoch: int, release: tuple[int, ...]) -> VersionRange:
    """Versions whose release starts with ``release`` (``==release.*``)."""
    lower = _release_version(epoch, release, ".dev0")
    bumped = release[:-1] + (release[-1] + 1,)
    upper = _release_version(epoch, bumped, ".dev0")
    return VersionRange.between(lower, upper)


def _clause_range(spec: Specifier) -> VersionRange:
    op = spec.operator
    raw = spec.version

    if op in ("==", "!=") and raw.endswith(".*"):
        prefix = Version(raw[:-2])
        rng = _prefix_range(prefix.epoch, prefix.release)
        return rng if op == "==" else rng.complement()

    if op == "===":
        try:
            return VersionRange.exact(Version(raw))
        except InvalidVersion:
            return VersionRange.empty()

    version = Version(raw)
    if op == "==":
        return VersionRange.matching(version)
    if op == "!=":
        return VersionRange.matching(version).complement()
    if op == "<":
        if version.pre is None and version.dev is None:
            suffix = ".dev0" if version.post is None else f".post{version.post}.dev0"
            cut = _release_version(version.epoch, version.release, suffix)
            return VersionRange.lower_than(cut)
        return VersionRange.lower_than(version)
    if op == "<=":
        return VersionRange.at_most(version)
    if op == ">":
        return VersionRange.beyond(version)
    if op == ">=":
        return VersionRange.higher_than(version)
    if op == "~=":
        prefix = _prefix_range(version.epoch, version.release[:-1])
        return VersionRange.higher_than(version).intersect(prefix)
    raise RequirementError(f"Unsupported specifier operator: {op!r}")


def range_from_specifier(specifier: SpecifierSet | str) -> VersionRange:
    """Convert a specifier set (or its text) into a ``VersionRange``.

    An empty specifier set yields the full range.

    Raises:
        RequirementError: If ``specifier`` is a string that does not parse.
    """
    if isinstance(specifier, str):
        specifier = parse_specifier(specifier)
    result = VersionRange.full()
    for clause in sorted(specifier, key=str):
        result = result.intersect(_clause_range(clause))
    return result


def mentions_prerelease(specifier: SpecifierSet | str) -> bool:
    """Whether any clause names a pre-release version (``>=2.0b1``)."""
    if isinstance(specifier, str):
        specifier = parse_specifier(specifier)
    for clause in specifier:
        raw = clause.version
        if raw.endswith(".*"):
            continue
        try:
            if Version(raw).is_prerelease:
                return True
        except InvalidVersion:
            continue
    return False
