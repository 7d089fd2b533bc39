"""Version ranges as canonical unions of intervals.

A ``VersionRange`` is a (possibly empty, possibly unbounded, possibly
disjoint) set of PEP 440 versions. It is stored as a finite tuple of
``Interval`` values kept in canonical form: sorted by lower bound,
non-overlapping, non-adjacent and free of empty intervals. Because the
canonical form is unique, structural equality is set equality, which is
what the solver relies on when it compares terms.

Bounds are versions, or a ``PostReleaseCeiling`` for ``>V``: PEP 440
excludes every post-release and local variant of ``V`` there, and no
single version lies just above all of them.

All operations are total and pure: they never raise and always return a
new range.

Laws checked by the property tests::

    r1.intersect(r1.union(r2)) == r1
    r.intersect(r.complement()).is_empty()
    r1.union(r2).contains(v) == (r1.contains(v) or r2.contains(v))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from packaging.version import Version


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------


def _compose(
    version: Version, post: int | None = None, dev: int | None = None
) -> Version:
    """``version``'s epoch, release and pre-release with new post/dev parts."""
    text = ".".join(str(part) for part in version.release)
    if version.epoch:
        text = f"{version.epoch}!{text}"
    if version.pre is not None:
        text += f"{version.pre[0]}{version.pre[1]}"
    if post is not None:
        text += f".post{post}"
    if dev is not None:
        text += f".dev{dev}"
    return Version(text)


def local_ceiling(version: Version) -> Version:
    """Smallest version above ``version`` and every ``version+local``.

    ``1.0`` -> ``1.0.post0.dev0``, ``1.0.post1`` -> ``1.0.post2.dev0``,
    ``1.0.dev1`` -> ``1.0.dev2``. The local label of ``version`` is ignored.
    """
    if version.dev is not None:
        return _compose(version, post=version.post, dev=version.dev + 1)
    if version.post is not None:
        return _compose(version, post=version.post + 1, dev=0)
    return _compose(version, post=0, dev=0)


def _family(version: Version) -> tuple:
    release = version.release
    while len(release) > 1 and release[-1] == 0:
        release = release[:-1]
    return (version.epoch, release, version.pre)


class PostReleaseCeiling:
    """The point just above ``version`` and all its post-releases and locals.

    ``PostReleaseCeiling(Version("1.0"))`` sorts after ``1.0``,
    ``1.0+cpu`` and ``1.0.post7.dev1`` and before ``1.0.0.1`` and
    ``1.1a1``. No version equals it, so intervals only ever use it as an
    exclusive bound. ``version`` must not carry post, dev or local parts.
    """

    __slots__ = ("version",)

    def __init__(self, version: Version) -> None:
        self.version = version

    def _key(self) -> tuple:
        return _family(self.version)

    def __lt__(self, other: object) -> bool:
        if isinstance(other, PostReleaseCeiling):
            return self._key() != other._key() and self.version < other.version
        if isinstance(other, Version):
            return other > self.version and _family(other) != self._key()
        return NotImplemented

    def __gt__(self, other: object) -> bool:
        if isinstance(other, PostReleaseCeiling):
            return self._key() != other._key() and self.version > other.version
        if isinstance(other, Version):
            return other <= self.version or _family(other) == self._key()
        return NotImplemented

    def __le__(self, other: object) -> bool:
        result = self.__gt__(other)
        return result if result is NotImplemented else not result

    def __ge__(self, other: object) -> bool:
        result = self.__lt__(other)
        return result if result is NotImplemented else not result

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PostReleaseCeiling):
            return self._key() == other._key()
        if isinstance(other, Version):
            return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("post-release-ceiling", self._key()))

    def __repr__(self) -> str:
        return f"PostReleaseCeiling({str(self.version)!r})"


Bound = Union[Version, PostReleaseCeiling]


# ---------------------------------------------------------------------------
# Interval: one contiguous piece of a range
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Interval:
    """A contiguous set of versions between two optional bounds.

    A bound of None means unbounded on that side; the matching
    ``*_inclusive`` flag is then always False, as it is for a
    ``PostReleaseCeiling`` bound once the interval is normalized.
    """

    lower: Bound | None = None
    lower_inclusive: bool = False
    upper: Bound | None = None
    upper_inclusive: bool = False

    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower < self.upper:
            return False
        if self.lower == self.upper:
            return not (self.lower_inclusive and self.upper_inclusive)
        return True

    def contains(self, version: Version) -> bool:
        if self.lower is not None:
            if version < self.lower:
                return False
            if version == self.lower and not self.lower_inclusive:
                return False
        if self.upper is not None:
            if version > self.upper:
                return False
            if version == self.upper and not self.upper_inclusive:
                return False
        return True


def _lower_key(interval: Interval) -> tuple:
    # Unbounded sorts first; at equal versions an inclusive bound starts earlier.
    if interval.lower is None:
        return (0,)
    return (1, interval.lower, 0 if interval.lower_inclusive else 1)


def _upper_key(interval: Interval) -> tuple:
    # Unbounded sorts last; at equal versions an exclusive bound ends earlier.
    if interval.upper is None:
        return (2,)
    return (1, interval.upper, 1 if interval.upper_inclusive else 0)


def _touches(first: Interval, second: Interval) -> bool:
    """Whether ``second`` (which starts no earlier) overlaps or abuts ``first``."""
    if first.upper is None or second.lower is None:
        return True
    if second.lower < first.upper:
        return True
    if second.lower == first.upper:
        return (
            first.upper_inclusive
            or second.lower_inclusive
            or isinstance(first.upper, PostReleaseCeiling)
        )
    return False


def _exclusive_ceilings(interval: Interval) -> Interval:
    lower_inclusive = interval.lower_inclusive and isinstance(interval.lower, Version)
    upper_inclusive = interval.upper_inclusive and isinstance(interval.upper, Version)
    if (lower_inclusive, upper_inclusive) == (
        interval.lower_inclusive,
        interval.upper_inclusive,
    ):
        return interval
    return Interval(interval.lower, lower_inclusive, interval.upper, upper_inclusive)


def _normalize(intervals: Iterable[Interval]) -> tuple[Interval, ...]:
    items = sorted(
        (iv for iv in map(_exclusive_ceilings, intervals) if not iv.is_empty()),
        key=_lower_key,
    )
    merged: list[Interval] = []
    for interval in items:
        if merged and _touches(merged[-1], interval):
            last = merged[-1]
            if _upper_key(interval) > _upper_key(last):
                merged[-1] = Interval(
                    last.lower,
                    last.lower_inclusive,
                    interval.upper,
                    interval.upper_inclusive,
                )
        else:
            merged.append(interval)
    return tuple(merged)


def _intersect_intervals(a: Interval, b: Interval) -> Interval:
    low = a if _lower_key(a) >= _lower_key(b) else b
    high = a if _upper_key(a) <= _upper_key(b) else b
    return Interval(low.lower, low.lower_inclusive, high.upper, high.upper_inclusive)


def _describe_upper(version: Version) -> str:
    """Render an exclusive upper bound the way a specifier would write it.

    ``X.dev0`` comes from ``<X``, ``X.postN.dev0`` from ``<X.postN`` and
    ``X.post0.dev0`` from ``<=X``.
    """
    if version.dev != 0 or version.local is not None:
        return f"<{version}"
    if version.post is None and version.pre is None:
        return f"<{version.base_version}"
    if version.post is None:
        return f"<{version}"
    if version.post == 0:
        return f"<={_compose(version)}"
    return f"<{_compose(version, post=version.post)}"


def _pinned(interval: Interval) -> Version | None:
    """The ``V`` of an interval spelled ``==V``, if it is one."""
    lower = interval.lower
    if not isinstance(lower, Version) or not interval.lower_inclusive:
        return None
    if lower == interval.upper and interval.upper_inclusive:
        return lower
    if (
        lower.local is None
        and not interval.upper_inclusive
        and interval.upper == local_ceiling(lower)
    ):
        return lower
    return None


# ---------------------------------------------------------------------------
# VersionRange
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionRange:
    """An immutable set of versions in canonical interval form.

    Build instances through the classmethod constructors or
    ``from_intervals``; the raw constructor trusts its input to already be
    canonical.

    Example::

        r = VersionRange.between(Version("1.0"), Version("2.0"))
        r.contains(Version("1.5"))          # True
        str(r.complement())                 # "<1.0 | >=2.0"
    """

    intervals: tuple[Interval, ...] = ()

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_intervals(cls, intervals: Iterable[Interval]) -> VersionRange:
        return cls(_normalize(intervals))

    @classmethod
    def empty(cls) -> VersionRange:
        """The distinguished range no version satisfies."""
        return cls(())

    @classmethod
    def full(cls) -> VersionRange:
        """The range every version satisfies."""
        return cls((Interval(),))

    @classmethod
    def exact(cls, version: Version) -> VersionRange:
        """Exactly ``version``, local label included."""
        return cls((Interval(version, True, version, True),))

    @classmethod
    def matching(cls, version: Version) -> VersionRange:
        """``== version``: without a local label it also matches ``version+any``."""
        if version.local is not None:
            return cls.exact(version)
        return cls((Interval(version, True, local_ceiling(version), False),))

    @classmethod
    def higher_than(cls, version: Version) -> VersionRange:
        """``>= version``."""
        return cls((Interval(version, True, None, False),))

    @classmethod
    def beyond(cls, version: Version) -> VersionRange:
        """``> version``: skips local variants and, for a release, its post-releases."""
        if version.post is None and version.dev is None:
            return cls((Interval(PostReleaseCeiling(Version(version.public)), False),))
        return cls.higher_than(local_ceiling(version))

    @classmethod
    def lower_than(cls, version: Version) -> VersionRange:
        """``< version``."""
        return cls((Interval(None, False, version, False),))

    @classmethod
    def at_most(cls, version: Version) -> VersionRange:
        """``<= version``, local variants of ``version`` included."""
        return cls.lower_than(local_ceiling(version))

    @classmethod
    def between(cls, lower: Version, upper: Version) -> VersionRange:
        """``>= lower, < upper``."""
        return cls.from_intervals([Interval(lower, True, upper, False)])

    # -- Predicates ---------------------------------------------------------

    def is_empty(self) -> bool:
        return not self.intervals

    def is_full(self) -> bool:
        return self.intervals == (Interval(),)

    def contains(self, version: Version) -> bool:
        return any(interval.contains(version) for interval in self.intervals)

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, Version):
            return False
        return self.contains(version)

    def subset_of(self, other: VersionRange) -> bool:
        return self.intersect(other) == self

    def is_disjoint(self, other: VersionRange) -> bool:
        return self.intersect(other).is_empty()

    def allows_all(self, other: VersionRange) -> bool:
        """Whether every version in ``other`` is also in this range."""
        return other.subset_of(self)

    def allows_any(self, other: VersionRange) -> bool:
        """Whether this range and ``other`` share at least one version."""
        return not self.is_disjoint(other)

    def pinned_version(self) -> Version | None:
        """The ``V`` when the range is exactly ``==V``, local variants allowed."""
        if len(self.intervals) != 1:
            return None
        return _pinned(self.intervals[0])

    # -- Set operations -----------------------------------------------------

    def intersect(self, other: VersionRange) -> VersionRange:
        pieces = [
            _intersect_intervals(a, b)
            for a in self.intervals
            for b in other.intervals
        ]
        return VersionRange.from_intervals(pieces)

    def union(self, other: VersionRange) -> VersionRange:
        return VersionRange.from_intervals(self.intervals + other.intervals)

    def complement(self) -> VersionRange:
        pieces: list[Interval] = []
        cursor: Bound | None = None
        cursor_inclusive = False
        for interval in self.intervals:
            if interval.lower is not None:
                pieces.append(
                    Interval(
                        cursor,
                        cursor_inclusive,
                        interval.lower,
                        not interval.lower_inclusive,
                    )
                )
            if interval.upper is None:
                return VersionRange.from_intervals(pieces)
            cursor = interval.upper
            cursor_inclusive = not interval.upper_inclusive
        pieces.append(Interval(cursor, cursor_inclusive, None, False))
        return VersionRange.from_intervals(pieces)

    def difference(self, other: VersionRange) -> VersionRange:
        return self.intersect(other.complement())

    def filter(self, versions: Iterable[Version]) -> list[Version]:
        """Return the versions in ``versions`` that this range contains, in order."""
        return [version for version in versions if self.contains(version)]

    # -- Rendering ----------------------------------------------------------

    def __str__(self) -> str:
        if self.is_empty():
            return "<empty>"
        if self.is_full():
            return "*"
        if len(self.intervals) == 2:
            first, second = self.intervals
            if (
                first.lower is None
                and second.upper is None
                and not first.upper_inclusive
            ):
                gap = Interval(
                    first.upper, True, second.lower, not second.lower_inclusive
                )
                excluded = _pinned(gap)
                if excluded is not None:
                    return f"!={excluded}"
        return " | ".join(self._format_interval(iv) for iv in self.intervals)

    def __repr__(self) -> str:
        return f"VersionRange({str(self)!r})"

    @staticmethod
    def _format_interval(interval: Interval) -> str:
        pinned = _pinned(interval)
        if pinned is not None:
            return f"=={pinned}"
        parts: list[str] = []
        if isinstance(interval.lower, PostReleaseCeiling):
            parts.append(f">{interval.lower.version}")
        elif interval.lower is not None:
            op = ">=" if interval.lower_inclusive else ">"
            parts.append(f"{op}{interval.lower}")
        if isinstance(interval.upper, PostReleaseCeiling):
            parts.append(f"<={interval.upper.version}.post*")
        elif interval.upper is not None:
            if interval.upper_inclusive:
                parts.append(f"<={interval.upper}")
            else:
                parts.append(_describe_upper(interval.upper))
        return ", ".join(parts)
