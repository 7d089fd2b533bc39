"""Shared Hypothesis strategies for solver property tests."""

from __future__ import annotations

from hypothesis import strategies as st

NAMES = ["p0", "p1", "p2", "p3"]
VERSIONS = ["1.0", "2.0", "3.0"]
SPECIFIERS = ["", "==1.0", "==2.0", ">=2.0", "<3.0", "!=2.0", "<2.0", ">=3.0"]


@st.composite
def universes(draw: st.DrawFn) -> tuple[dict, list[str]]:
    """Packages with 1-3 versions each; each version depends on 0-2 others.

    Returns ``(packages, requirements)`` where ``packages`` is an
    ``InMemoryProvider`` mapping and ``requirements`` are 1-3 top-level
    requirement strings. Names are two characters long.
    """
    packages: dict[str, dict[str, list[str]]] = {}
    for name in NAMES:
        versions = draw(st.lists(st.sampled_from(VERSIONS), min_size=1, max_size=3, unique=True))
        entries: dict[str, list[str]] = {}
        for version in versions:
            others = [n for n in NAMES if n != name]
            targets = draw(st.lists(st.sampled_from(others), max_size=2, unique=True))
            entries[version] = [f"{t}{draw(st.sampled_from(SPECIFIERS))}" for t in targets]
        packages[name] = entries

    roots = draw(st.lists(st.sampled_from(NAMES), min_size=1, max_size=3, unique=True))
    requirements = [f"{r}{draw(st.sampled_from(SPECIFIERS))}" for r in roots]
    return packages, requirements
