"""Terms: atomic claims about one subject's version.

A positive term ``a >=1.0`` says "a is selected at a version in
``>=1.0``". A negative term ``not a >=1.0`` says "a is not selected at a
version in ``>=1.0``", which includes "a is not selected at all".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from versolve.core.requirements import Subject
from versolve.core.version import VersionRange


class SetRelation(Enum):
    """How the set of selections allowed by one term relates to another's."""

    SUBSET = "subset"
    DISJOINT = "disjoint"
    OVERLAPPING = "overlapping"


@dataclass(frozen=True)
class Term:
    """A (subject, range, polarity) claim.

    Attributes:
        subject: The subject the claim is about.
        range: The version range of the claim.
        positive: True for "version in range", False for "not in range".
    """

    subject: Subject
    range: VersionRange
    positive: bool = True

    @property
    def inverse(self) -> Term:
        return Term(self.subject, self.range, not self.positive)

    def satisfies(self, other: Term) -> bool:
        """Whether this term being true implies ``other`` is true."""
        return (
            self.subject == other.subject
            and self.relation(other) is SetRelation.SUBSET
        )

    def relation(self, other: Term) -> SetRelation:
        """Relate the selections allowed by this term to those of ``other``.

        Both terms must be about the same subject.
        """
        if self.subject != other.subject:
            raise ValueError(f"{other} should refer to {self.subject}")

        mine = self.range
        theirs = other.range
        if other.positive:
            if self.positive:
                if theirs.allows_all(mine):
                    return SetRelation.SUBSET
                if not mine.allows_any(theirs):
                    return SetRelation.DISJOINT
                return SetRelation.OVERLAPPING
            # "not mine" can never be a subset of a positive term: it
            # allows the subject to be absent.
            if mine.allows_all(theirs):
                return SetRelation.DISJOINT
            return SetRelation.OVERLAPPING

        if self.positive:
            if not theirs.allows_any(mine):
                return SetRelation.SUBSET
            if theirs.allows_all(mine):
                return SetRelation.DISJOINT
            return SetRelation.OVERLAPPING
        if mine.allows_all(theirs):
            return SetRelation.SUBSET
        return SetRelation.OVERLAPPING

    def intersect(self, other: Term) -> Term | None:
        """The term allowing what both terms allow, or None if nothing is.

        Both terms must be about the same subject.
        """
        if self.subject != other.subject:
            raise ValueError(f"{other} should refer to {self.subject}")

        if self.positive != other.positive:
            positive = self if self.positive else other
            negative = other if self.positive else self
            return self._non_empty(positive.range.difference(negative.range), True)
        if self.positive:
            return self._non_empty(self.range.intersect(other.range), True)
        return self._non_empty(self.range.union(other.range), False)

    def difference(self, other: Term) -> Term | None:
        """The term allowing what this term allows and ``other`` does not."""
        return self.intersect(other.inverse)

    def _non_empty(self, rng: VersionRange, positive: bool) -> Term | None:
        if rng.is_empty():
            return None
        return Term(self.subject, rng, positive)

    def describe(self) -> str:
        """Render the subject and range without the polarity."""
        if self.subject.is_root or self.range.is_full():
            return str(self.subject)
        return f"{self.subject} {self.range}"

    def __str__(self) -> str:
        prefix = "" if self.positive else "not "
        return f"{prefix}{self.describe()}"
