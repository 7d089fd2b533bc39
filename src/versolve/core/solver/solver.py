"""Conflict-driven version solver.

The solver repeats three steps until every required subject is decided
or the root itself is ruled out:

1. **Unit propagation.** For each incompatibility touching a changed
   subject, if all but one of its terms are satisfied, derive the inverse
   of the remaining term. If all terms are satisfied, there is a conflict.
2. **Conflict resolution.** Combine the conflicting incompatibility with
   the causes of its satisfiers until it would have propagated at an
   earlier decision level, learn it, and back-jump to that level.
3. **Decision.** Pick an undecided subject through the ``DecisionPolicy``,
   add the incompatibilities of its preferred version and decide it unless
   one of them is already violated.

Everything runs on the caller's thread with an explicit decision-level
stack; there is no recursion. Metadata comes from a ``MetadataBroker`` so
prefetch threads can fill answers in ahead of time without influencing
any choice.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from packaging.requirements import Requirement
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import Version

from versolve.core.provider import (
    IndexUnreachable,
    MalformedMetadata,
    MetadataBroker,
    MetadataProvider,
    MetadataRequest,
    PackageNotFound,
    VersionMetadata,
    VersionsRequest,
)
from versolve.core.report.explain import collect_hints, explain
from versolve.core.requirements import (
    Dependency,
    Environment,
    Subject,
    dependencies_for,
)
from versolve.core.solver.incompatibility import (
    ConflictCause,
    DependencyCause,
    Incompatibility,
    IncompatibilityStore,
    NoVersionsCause,
    NotFoundCause,
    RequiresPythonCause,
    RootCause,
)
from versolve.core.solver.partial_solution import PartialSolution
from versolve.core.solver.policy import CandidateFilter, DecisionPolicy
from versolve.core.solver.term import SetRelation, Term
from versolve.core.version import VersionRange, mentions_prerelease
from versolve.exceptions import (
    Cancelled,
    MetadataUnavailable,
    RequirementError,
    Unsatisfiable,
)

logger = logging.getLogger(__name__)

ROOT_VERSION = Version("0")

_CONFLICT = object()


class CancellationToken:
    """Cooperative cancellation flag checked between solver steps."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("Resolution was cancelled")


@dataclass
class SolverResult:
    """Final state of a successful solve.

    Attributes:
        decisions: Every decided subject (root included) and its version,
            in decision order.
        dependencies: The dependency edges of each decided subject at its
            decided version.
        metadata: Metadata of each decided package version, by base name.
        attempted_solutions: Number of times the solver backtracked and
            tried again, plus one.
        warnings: User-facing warnings (for example, yanked selections).
        store: The incompatibility store of the run.
    """

    decisions: dict[Subject, Version]
    dependencies: dict[Subject, list[Dependency]]
    metadata: dict[str, VersionMetadata]
    attempted_solutions: int = 1
    warnings: list[str] = field(default_factory=list)
    store: IncompatibilityStore | None = None


class VersionSolver:
    """Solves one set of top-level requirements against a provider.

    Args:
        requirements: Top-level requirements of the virtual root.
        provider: Metadata source.
        environment: Target environment for marker and Requires-Python
            evaluation.
        policy: Decision policy (mode and lockfile preferences).
        candidate_filter: Pre-release policy. Defaults to
            ``if-necessary-or-explicit`` over the top-level requirements.
        concurrency: Prefetch worker count; 1 disables prefetching.
        cancel: Optional cancellation token.
    """

    def __init__(
        self,
        requirements: list[Requirement],
        provider: MetadataProvider,
        environment: Environment | None = None,
        policy: DecisionPolicy | None = None,
        candidate_filter: CandidateFilter | None = None,
        concurrency: int = 1,
        cancel: CancellationToken | None = None,
    ) -> None:
        self._requirements = list(requirements)
        self._environment = environment or Environment.current()
        self._policy = policy or DecisionPolicy()
        self._filter = candidate_filter or CandidateFilter(
            explicit=explicit_prereleases(self._requirements)
        )
        self._broker = MetadataBroker(provider, concurrency=concurrency)
        self._cancel = cancel or CancellationToken()

        self._store = IncompatibilityStore()
        self._solution = PartialSolution()
        self._root = Subject.root()
        self._dependencies: dict[tuple[Subject, Version], list[Dependency]] = {}
        self._incompatibilities: dict[tuple[Subject, Version], list[Incompatibility]] = {}
        self._warnings: list[str] = []

    @property
    def store(self) -> IncompatibilityStore:
        return self._store

    # -- Main loop ----------------------------------------------------------

    def solve(self) -> SolverResult:
        """Run to completion.

        Raises:
            Unsatisfiable: No assignment satisfies the requirements.
            MetadataUnavailable: The provider failed for a reason other
                than a missing package.
            Cancelled: The cancellation token was triggered.
        """
        try:
            self._add(
                self._store.create(
                    [Term(self._root, VersionRange.exact(ROOT_VERSION), False)],
                    RootCause(),
                )
            )
            subject: Subject | None = self._root
            while subject is not None:
                self._cancel.raise_if_cancelled()
                self._propagate(subject)
                self._cancel.raise_if_cancelled()
                subject = self._choose_subject_version()
            return self._result()
        finally:
            self._broker.close()

    def _add(self, incompatibility: Incompatibility) -> None:
        logger.debug("fact: %s", incompatibility)
        self._store.index(incompatibility)

    # -- Unit propagation ---------------------------------------------------

    def _propagate(self, subject: Subject) -> None:
        changed: dict[Subject, None] = {subject: None}
        while changed:
            current = next(iter(changed))
            del changed[current]

            # Newest first: learned incompatibilities are more general.
            for incompatibility in reversed(self._store.for_subject(current)):
                result = self._propagate_incompatibility(incompatibility)
                if result is _CONFLICT:
                    root_cause = self._resolve_conflict(incompatibility)
                    changed.clear()
                    derived = self._propagate_incompatibility(root_cause)
                    if isinstance(derived, Subject):
                        changed[derived] = None
                    break
                if isinstance(result, Subject):
                    changed[result] = None

    def _propagate_incompatibility(self, incompatibility: Incompatibility):
        unsatisfied: Term | None = None
        for term in incompatibility.terms:
            relation = self._solution.relation(term)
            if relation is SetRelation.DISJOINT:
                return None
            if relation is SetRelation.OVERLAPPING:
                if unsatisfied is not None:
                    return None
                unsatisfied = term

        if unsatisfied is None:
            return _CONFLICT

        logger.debug("derived: %s", unsatisfied.inverse)
        self._solution.derive(unsatisfied.inverse, incompatibility.id)
        return unsatisfied.subject

    # -- Conflict resolution ------------------------------------------------

    def _resolve_conflict(self, incompatibility: Incompatibility) -> Incompatibility:
        logger.debug("conflict: %s", incompatibility)
        learned = False
        while not incompatibility.is_failure:
            most_recent_term: Term | None = None
            most_recent_satisfier = None
            difference: Term | None = None
            previous_level = 1

            for term in incompatibility.terms:
                satisfier = self._solution.satisfier(term)
                if most_recent_satisfier is None:
                    most_recent_term = term
                    most_recent_satisfier = satisfier
                elif most_recent_satisfier.index < satisfier.index:
                    previous_level = max(previous_level, most_recent_satisfier.decision_level)
                    most_recent_term = term
                    most_recent_satisfier = satisfier
                    difference = None
                else:
                    previous_level = max(previous_level, satisfier.decision_level)

                if most_recent_term == term:
                    difference = most_recent_satisfier.term.difference(most_recent_term)
                    if difference is not None:
                        previous_level = max(
                            previous_level,
                            self._solution.satisfier(difference.inverse).decision_level,
                        )

            assert most_recent_satisfier is not None and most_recent_term is not None
            if (
                previous_level < most_recent_satisfier.decision_level
                or most_recent_satisfier.cause is None
            ):
                self._solution.backtrack(previous_level)
                if learned:
                    self._add(incompatibility)
                return incompatibility

            cause = self._store.get(most_recent_satisfier.cause)
            satisfier_subject = most_recent_satisfier.term.subject
            new_terms = [t for t in incompatibility.terms if t != most_recent_term]
            new_terms.extend(t for t in cause.terms if t.subject != satisfier_subject)
            if difference is not None:
                new_terms.append(difference.inverse)

            incompatibility = self._store.create(
                new_terms, ConflictCause(incompatibility.id, cause.id)
            )
            learned = True

            partially = "" if difference is None else " partially"
            logger.debug(
                "! %s is%s satisfied by %s", most_recent_term, partially, most_recent_satisfier
            )
            logger.debug('! which is caused by "%s"', cause)
            logger.debug("! thus: %s", incompatibility)

        raise Unsatisfiable(
            explain(self._store, incompatibility.id),
            hints=collect_hints(self._store, incompatibility.id),
            failure_id=incompatibility.id,
            store=self._store,
        )

    # -- Decision making ----------------------------------------------------

    def _versions(self, subject: Subject) -> list[Version]:
        """Known versions of ``subject`` (newest first), via the broker."""
        if subject.is_root:
            return [ROOT_VERSION]
        try:
            return self._broker.versions(subject.name)
        except (IndexUnreachable, MalformedMetadata) as exc:
            raise MetadataUnavailable(subject.name, None, str(exc)) from exc

    def _candidates(self, term: Term) -> list[Version] | None:
        """Admitted candidates for ``term``; None when the package is missing."""
        try:
            versions = self._versions(term.subject)
        except PackageNotFound:
            return None
        if term.subject.is_root:
            return term.range.filter(versions)
        return self._filter.candidates(term.subject, versions, term.range)

    def _is_yanked(self, subject: Subject, version: Version) -> bool:
        return self._metadata(subject, version).yanked

    def _choose_subject_version(self) -> Subject | None:
        unsatisfied = self._solution.unsatisfied()
        if not unsatisfied:
            return None

        options = []
        by_subject: dict[Subject, Term] = {}
        candidates: dict[Subject, list[Version] | None] = {}
        for term in unsatisfied:
            found = self._candidates(term)
            candidates[term.subject] = found
            by_subject[term.subject] = term
            options.append(
                (
                    term.subject,
                    len(found or ()),
                    len(self._store.for_subject(term.subject)),
                )
            )
            if found and not term.subject.is_root:
                best = self._policy.ordered(found)[0]
                self._broker.prefetch(MetadataRequest(term.subject.name, best))

        subject = self._policy.pick(options)
        assert subject is not None
        term = by_subject[subject]
        found = candidates[subject]

        if found is None:
            try:
                self._versions(subject)
            except PackageNotFound as exc:
                self._add(
                    self._store.create(
                        [Term(subject, VersionRange.full())],
                        NotFoundCause(str(exc), exc.hint),
                    )
                )
            return subject

        version = self._policy.choose_version(
            subject, term.range, found, lambda v: self._is_yanked(subject, v)
        )
        if version is None:
            self._add(self._store.create([term], NoVersionsCause()))
            return subject

        conflict = False
        for incompatibility in self._incompatibilities_for(subject, version):
            self._add(incompatibility)
            conflict = conflict or all(
                t.subject == subject or self._solution.satisfies(t)
                for t in incompatibility.terms
            )

        if not conflict:
            if not subject.is_root and self._is_yanked(subject, version):
                message = f"{subject}=={version} is yanked"
                if message not in self._warnings:
                    self._warnings.append(message)
                    logger.warning("Selected a yanked release: %s", message)
            logger.debug("selecting %s %s", subject, version)
            self._solution.decide(subject, version)
        return subject

    # -- Incompatibilities from metadata ------------------------------------

    def _metadata(self, subject: Subject, version: Version) -> VersionMetadata:
        try:
            return self._broker.metadata(subject.name, version)
        except (IndexUnreachable, MalformedMetadata, PackageNotFound) as exc:
            raise MetadataUnavailable(subject.name, str(version), str(exc)) from exc

    def _incompatibilities_for(
        self, subject: Subject, version: Version
    ) -> list[Incompatibility]:
        key = (subject, version)
        cached = self._incompatibilities.get(key)
        if cached is not None:
            return cached

        depender = Term(subject, VersionRange.exact(version))
        result: list[Incompatibility] = []

        if subject.is_root:
            dependencies = self._expand(subject, version, self._requirements, None)
        else:
            metadata = self._metadata(subject, version)
            requires_python = self._requires_python_conflict(metadata)
            if requires_python is not None:
                incompatibility = self._store.create([depender], requires_python)
                self._incompatibilities[key] = [incompatibility]
                self._dependencies[key] = []
                return [incompatibility]

            dependencies = self._expand(subject, version, metadata.requires, subject.extra)
            if subject.extra is not None:
                base = Dependency(
                    subject=subject.base,
                    range=VersionRange.exact(version),
                    specifier=f"=={version}",
                )
                dependencies.insert(0, base)

        kept: list[Dependency] = []
        for dependency in dependencies:
            if dependency.subject == subject and dependency.range.contains(version):
                continue
            kept.append(dependency)
            result.append(
                self._store.create(
                    [depender, Term(dependency.subject, dependency.range, False)],
                    DependencyCause(dependency),
                )
            )
            if not dependency.subject.is_root:
                self._broker.prefetch(VersionsRequest(dependency.subject.name))

        self._dependencies[key] = kept
        self._incompatibilities[key] = result
        return result

    def _expand(
        self,
        subject: Subject,
        version: Version,
        requirements,
        extra: str | None,
    ) -> list[Dependency]:
        try:
            return dependencies_for(requirements, self._environment, extra)
        except RequirementError as exc:
            if subject.is_root:
                raise
            raise MetadataUnavailable(subject.name, str(version), str(exc)) from exc

    def _requires_python_conflict(
        self, metadata: VersionMetadata
    ) -> RequiresPythonCause | None:
        if not metadata.requires_python:
            return None
        python = self._environment.python_version
        if python is None:
            return None
        try:
            specifier = SpecifierSet(metadata.requires_python)
        except InvalidSpecifier:
            return None
        if specifier.contains(python, prereleases=True):
            return None
        return RequiresPythonCause(metadata.requires_python, str(python))

    # -- Result -------------------------------------------------------------

    def _result(self) -> SolverResult:
        decisions = self._solution.decisions
        dependencies: dict[Subject, list[Dependency]] = {}
        metadata: dict[str, VersionMetadata] = {}
        for subject, version in decisions.items():
            dependencies[subject] = list(self._dependencies.get((subject, version), []))
            if not subject.is_root and subject.name not in metadata:
                metadata[subject.name] = self._metadata(subject, version)
        logger.debug(
            "solved %d subjects after %d attempt(s)",
            len(decisions),
            self._solution.attempted_solutions,
        )
        return SolverResult(
            decisions=decisions,
            dependencies=dependencies,
            metadata=metadata,
            attempted_solutions=self._solution.attempted_solutions,
            warnings=list(self._warnings),
            store=self._store,
        )


def explicit_prereleases(requirements: list[Requirement]) -> set[str]:
    """Canonical names whose top-level specifiers name a pre-release."""
    return {
        Subject.of(req.name).name
        for req in requirements
        if mentions_prerelease(req.specifier)
    }
