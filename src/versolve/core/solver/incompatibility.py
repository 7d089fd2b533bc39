"""Incompatibilities, their causes, and the append-only store holding them.

An incompatibility is a set of terms that cannot all be true at once.
Every incompatibility records why it holds: either an external fact
(a dependency edge, a missing package, an unsupported interpreter) or a
resolution step that combined two earlier incompatibilities. The latter
form a derivation DAG which the explanation writer unfolds on failure.

Incompatibilities live in an ``IncompatibilityStore``: an append-only
arena where each entry is identified by its integer position. Conflict
causes refer to their parents by id, so the DAG is never copied and can
be walked backwards safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable, Union

from versolve.core.report.explain import describe
from versolve.core.requirements import Dependency, Subject
from versolve.core.solver.term import Term


# ---------------------------------------------------------------------------
# Causes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RootCause:
    """The root subject must be selected."""

    kind: ClassVar[str] = "root"


@dataclass(frozen=True)
class DependencyCause:
    """A version of the depender requires ``dependency``."""

    dependency: Dependency
    kind: ClassVar[str] = "dependency"


@dataclass(frozen=True)
class NoVersionsCause:
    """No candidate version lies in the term's range."""

    kind: ClassVar[str] = "no_versions"


@dataclass(frozen=True)
class NotFoundCause:
    """The index has no such package."""

    reason: str
    hint: str = ""
    kind: ClassVar[str] = "not_found"


@dataclass(frozen=True)
class RequiresPythonCause:
    """The version's ``Requires-Python`` excludes the target interpreter."""

    requires_python: str
    python: str
    kind: ClassVar[str] = "requires_python"


@dataclass(frozen=True)
class ConflictCause:
    """Derived by resolving incompatibility ``conflict`` against ``other``."""

    conflict: int
    other: int
    kind: ClassVar[str] = "conflict"


Cause = Union[
    RootCause,
    DependencyCause,
    NoVersionsCause,
    NotFoundCause,
    RequiresPythonCause,
    ConflictCause,
]


# ---------------------------------------------------------------------------
# Incompatibility
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Incompatibility:
    """A set of terms that are never all satisfied together.

    Attributes:
        id: Position in the owning store.
        terms: The terms, at most one per subject after normalization.
        cause: Why the terms are incompatible.
    """

    id: int
    terms: tuple[Term, ...]
    cause: Cause

    @property
    def is_failure(self) -> bool:
        """True when the incompatibility rules out the root itself."""
        return not self.terms or (
            len(self.terms) == 1
            and self.terms[0].positive
            and self.terms[0].subject.is_root
        )

    def __str__(self) -> str:
        return describe(self)


def _normalize(terms: Iterable[Term], cause: Cause) -> tuple[Term, ...]:
    terms = list(terms)

    # The root is always selected, so a positive root term in a derived
    # incompatibility carries no information.
    if isinstance(cause, ConflictCause) and len(terms) > 1:
        stripped = [t for t in terms if not (t.positive and t.subject.is_root)]
        if stripped:
            terms = stripped

    by_subject: dict[Subject, list[Term]] = {}
    for term in terms:
        existing = by_subject.get(term.subject)
        if existing is None:
            by_subject[term.subject] = [term]
            continue
        merged = existing[0].intersect(term)
        if merged is None:
            # The two terms exclude each other; keep both so the
            # incompatibility still states exactly what was derived.
            existing.append(term)
        else:
            existing[0] = merged
    return tuple(t for group in by_subject.values() for t in group)


# ---------------------------------------------------------------------------
# IncompatibilityStore
# ---------------------------------------------------------------------------


class IncompatibilityStore:
    """Append-only arena of incompatibilities with a per-subject index.

    ``create`` allocates an entry without making it visible to unit
    propagation; intermediate derivations made during conflict resolution
    are created this way so the explanation can still reach them.
    ``index`` then makes an entry visible.
    """

    def __init__(self) -> None:
        self._arena: list[Incompatibility] = []
        self._by_subject: dict[Subject, list[int]] = {}

    def create(self, terms: Iterable[Term], cause: Cause) -> Incompatibility:
        incompatibility = Incompatibility(len(self._arena), _normalize(terms, cause), cause)
        self._arena.append(incompatibility)
        return incompatibility

    def index(self, incompatibility: Incompatibility) -> None:
        """Make ``incompatibility`` visible to ``for_subject`` lookups."""
        for term in incompatibility.terms:
            ids = self._by_subject.setdefault(term.subject, [])
            if not ids or ids[-1] != incompatibility.id:
                ids.append(incompatibility.id)

    def get(self, incompatibility_id: int) -> Incompatibility:
        return self._arena[incompatibility_id]

    def for_subject(self, subject: Subject) -> list[Incompatibility]:
        """Indexed incompatibilities mentioning ``subject``, oldest first."""
        return [self._arena[i] for i in self._by_subject.get(subject, ())]

    def __len__(self) -> int:
        return len(self._arena)

    def __iter__(self):
        return iter(self._arena)
