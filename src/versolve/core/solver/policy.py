"""Decision policy: which subject to decide next and which version to try.

The policy is the only place where resolution preferences live. It is a
pure function of its inputs, so two resolutions given the same metadata
and the same policy always make the same choices.

Subject priority, lowest key first:

1. subjects with at most one candidate left (cheap to decide; a subject
   with none fails fast),
2. subjects mentioned by the most incompatibilities (most contended),
3. subject name, then extra.

Version preference: a prior-lockfile version if it is still a candidate,
else the newest (``newest`` mode) or oldest (``lowest`` mode) candidate.
Yanked versions are skipped unless the range pins exactly that version.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Mapping

from packaging.version import Version

from versolve.core.requirements import Subject
from versolve.core.version import PrereleaseMode, VersionRange


class ResolutionMode(str, Enum):
    """Which end of a range to prefer when choosing a version."""

    NEWEST = "newest"
    LOWEST = "lowest"


# ---------------------------------------------------------------------------
# CandidateFilter: the single pre-release policy switch
# ---------------------------------------------------------------------------


class CandidateFilter:
    """Builds the candidate list for a subject from its current range.

    Args:
        mode: The pre-release policy.
        explicit: Package names whose top-level requirements name a
            pre-release version; these count as explicitly requested.
    """

    def __init__(
        self,
        mode: PrereleaseMode = PrereleaseMode.IF_NECESSARY_OR_EXPLICIT,
        explicit: Iterable[str] = (),
    ) -> None:
        self.mode = PrereleaseMode(mode)
        self.explicit = frozenset(explicit)

    def candidates(
        self, subject: Subject, versions: Iterable[Version], rng: VersionRange
    ) -> list[Version]:
        """Versions in ``rng`` that the policy admits, in input order."""
        in_range = rng.filter(versions)
        if self.mode is PrereleaseMode.ALLOW:
            return in_range

        stable = [v for v in in_range if not v.is_prerelease]
        if self.mode is PrereleaseMode.DISALLOW:
            return stable

        if self.mode in (
            PrereleaseMode.EXPLICIT,
            PrereleaseMode.IF_NECESSARY_OR_EXPLICIT,
        ) and subject.name in self.explicit:
            return in_range
        if self.mode in (
            PrereleaseMode.IF_NECESSARY,
            PrereleaseMode.IF_NECESSARY_OR_EXPLICIT,
        ) and not stable:
            return in_range
        return stable


# ---------------------------------------------------------------------------
# DecisionPolicy
# ---------------------------------------------------------------------------


@dataclass
class DecisionPolicy:
    """Subject ordering and version choice.

    Attributes:
        mode: ``newest`` or ``lowest``.
        preferences: Canonical package name -> version from a prior
            lockfile. Preferred when still a candidate.
    """

    mode: ResolutionMode = ResolutionMode.NEWEST
    preferences: Mapping[str, Version] = field(default_factory=dict)

    def priority(self, subject: Subject, candidate_count: int, contention: int) -> tuple:
        return (candidate_count > 1, -contention, subject.sort_key)

    def pick(self, options: Iterable[tuple[Subject, int, int]]) -> Subject | None:
        """Choose among ``(subject, candidate_count, contention)`` options."""
        best: tuple | None = None
        chosen: Subject | None = None
        for subject, count, contention in options:
            key = self.priority(subject, count, contention)
            if best is None or key < best:
                best = key
                chosen = subject
        return chosen

    def ordered(self, candidates: Iterable[Version]) -> list[Version]:
        """Candidates in the order the mode prefers them."""
        return sorted(candidates, reverse=self.mode is ResolutionMode.NEWEST)

    def choose_version(
        self,
        subject: Subject,
        rng: VersionRange,
        candidates: Iterable[Version],
        is_yanked: Callable[[Version], bool],
    ) -> Version | None:
        """Pick the version to try for ``subject``, or None if none is usable.

        Args:
            subject: The subject being decided.
            rng: Its current allowed range.
            candidates: Versions the candidate filter admitted.
            is_yanked: Lookup for the yanked flag; only called for versions
                that would otherwise be chosen.
        """
        pinned = rng.pinned_version() is not None

        def usable(version: Version) -> bool:
            return (pinned and version in rng) or not is_yanked(version)

        ordered = self.ordered(candidates)
        preferred = self.preferences.get(subject.name)
        if preferred is not None and preferred in ordered and usable(preferred):
            return preferred
        for version in ordered:
            if usable(version):
                return version
        return None
