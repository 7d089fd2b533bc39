"""Subjects and dependency edges of the requirement graph.

A subject is the unit the solver assigns a version to: a canonicalized
package name plus at most one extra. ``requests[socks]`` is modeled as
two subjects, ``requests`` and ``requests[socks]``; the extra subject
depends on the base subject at exactly the same version, so activating
an extra never lets the base drift.
"""

from __future__ import annotations

from dataclasses import dataclass

from packaging.utils import canonicalize_name

from versolve.core.version import VersionRange

# Not a valid distribution name, so it cannot collide with a real package.
ROOT_NAME = "<root>"


@dataclass(frozen=True)
class Subject:
    """A resolvable unit: package name plus an optional extra.

    Attributes:
        name: Canonical package name (PEP 503 normalized).
        extra: Extra name (normalized), or None for the base package.
    """

    name: str
    extra: str | None = None

    @classmethod
    def of(cls, name: str, extra: str | None = None) -> Subject:
        """Build a subject, canonicalizing the name and extra."""
        if extra is not None:
            extra = canonicalize_name(extra)
        return cls(canonicalize_name(name), extra)

    @classmethod
    def root(cls) -> Subject:
        return cls(ROOT_NAME)

    @property
    def is_root(self) -> bool:
        return self.name == ROOT_NAME

    @property
    def base(self) -> Subject:
        """The subject without its extra."""
        if self.extra is None:
            return self
        return Subject(self.name)

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.name, self.extra or "")

    def __str__(self) -> str:
        if self.is_root:
            return "root"
        if self.extra is None:
            return self.name
        return f"{self.name}[{self.extra}]"


@dataclass(frozen=True)
class Dependency:
    """One requirement edge: ``subject`` must have a version in ``range``.

    Attributes:
        subject: The required subject.
        range: Allowed versions.
        specifier: The specifier text as written ("" means any version).
        marker: The environment marker that gated this edge, as text.
    """

    subject: Subject
    range: VersionRange
    specifier: str = ""
    marker: str | None = None

    def __str__(self) -> str:
        text = f"{self.subject}{self.specifier}"
        if self.marker:
            text += f"; {self.marker}"
        return text
