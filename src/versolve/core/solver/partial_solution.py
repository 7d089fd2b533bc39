"""The solver's in-progress assignment and its derivation history."""

from __future__ import annotations

from dataclasses import dataclass

from packaging.version import Version

from versolve.core.requirements import Subject
from versolve.core.solver.term import SetRelation, Term
from versolve.core.version import VersionRange


@dataclass(frozen=True)
class Assignment:
    """A term placed in the partial solution.

    Attributes:
        term: The assigned term.
        decision_level: Number of decisions made when it was assigned.
        index: Position in the assignment sequence.
        cause: Id of the incompatibility it was derived from, or None for
            a decision.
    """

    term: Term
    decision_level: int
    index: int
    cause: int | None = None

    @property
    def is_decision(self) -> bool:
        return self.cause is None

    def __str__(self) -> str:
        return str(self.term)


class PartialSolution:
    """Ordered decisions and derivations with per-subject accumulated terms.

    For every subject the solution keeps either one accumulated positive
    term (the intersection of everything assigned to it) or, until a
    positive assignment arrives, one accumulated negative term.
    """

    def __init__(self) -> None:
        self._assignments: list[Assignment] = []
        self._decisions: dict[Subject, Version] = {}
        self._positive: dict[Subject, Term] = {}
        self._negative: dict[Subject, Term] = {}
        self._attempted_solutions = 1
        self._backtracking = False

    @property
    def decision_level(self) -> int:
        return len(self._decisions)

    @property
    def decisions(self) -> dict[Subject, Version]:
        """Decided subjects and their versions, in decision order."""
        return dict(self._decisions)

    @property
    def attempted_solutions(self) -> int:
        return self._attempted_solutions

    @property
    def assignments(self) -> list[Assignment]:
        return list(self._assignments)

    def unsatisfied(self) -> list[Term]:
        """Positive terms of subjects that are required but not yet decided."""
        return [
            term
            for subject, term in self._positive.items()
            if subject not in self._decisions
        ]

    def decide(self, subject: Subject, version: Version) -> None:
        if self._backtracking:
            self._attempted_solutions += 1
        self._backtracking = False
        self._decisions[subject] = version
        self._assign(Term(subject, VersionRange.exact(version)), None)

    def derive(self, term: Term, cause: int) -> None:
        self._assign(term, cause)

    def _assign(self, term: Term, cause: int | None) -> None:
        assignment = Assignment(term, self.decision_level, len(self._assignments), cause)
        self._assignments.append(assignment)
        self._register(assignment)

    def backtrack(self, decision_level: int) -> None:
        """Drop every assignment made above ``decision_level``."""
        self._backtracking = True
        touched: set[Subject] = set()
        while self._assignments and self._assignments[-1].decision_level > decision_level:
            removed = self._assignments.pop()
            touched.add(removed.term.subject)
            if removed.is_decision:
                self._decisions.pop(removed.term.subject, None)

        for subject in touched:
            self._positive.pop(subject, None)
            self._negative.pop(subject, None)
        for assignment in self._assignments:
            if assignment.term.subject in touched:
                self._register(assignment)

    def _register(self, assignment: Assignment) -> None:
        term = assignment.term
        subject = term.subject
        old_positive = self._positive.get(subject)
        if old_positive is not None:
            merged = old_positive.intersect(term)
            if merged is None:
                raise RuntimeError(f"{term} contradicts {old_positive}")
            self._positive[subject] = merged
            return

        old_negative = self._negative.get(subject)
        if old_negative is not None:
            merged = old_negative.intersect(term)
            if merged is None:
                raise RuntimeError(f"{term} contradicts {old_negative}")
            term = merged

        if term.positive:
            self._negative.pop(subject, None)
            self._positive[subject] = term
        else:
            self._negative[subject] = term

    def satisfier(self, term: Term) -> Assignment:
        """The earliest assignment after which ``term`` is satisfied."""
        accumulated: Term | None = None
        for assignment in self._assignments:
            if assignment.term.subject != term.subject:
                continue
            if accumulated is None:
                accumulated = assignment.term
            else:
                accumulated = accumulated.intersect(assignment.term)
            if accumulated is not None and accumulated.satisfies(term):
                return assignment
        raise RuntimeError(f"{term} is not satisfied by the partial solution")

    def satisfies(self, term: Term) -> bool:
        return self.relation(term) is SetRelation.SUBSET

    def relation(self, term: Term) -> SetRelation:
        positive = self._positive.get(term.subject)
        if positive is not None:
            return positive.relation(term)
        negative = self._negative.get(term.subject)
        if negative is None:
            return SetRelation.OVERLAPPING
        return negative.relation(term)
