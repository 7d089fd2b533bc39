"""Property-based tests for deterministic output.

Verifies that for any package universe:
- Prefetch concurrency does not change decisions or failure reports
- Lockfiles built from repeated resolutions are byte-identical
- Re-resolving with a lockfile's own preferences reproduces it
"""

from __future__ import annotations

from typing import Callable

from hypothesis import HealthCheck, given, settings

from versolve.core.lockfile import Lockfile
from versolve.core.report import build_graph
from versolve.core.solver import DecisionPolicy, SolverResult
from versolve.exceptions import Unsatisfiable

from tests.properties.strategies import universes

Solve = Callable[..., SolverResult]

PROPERTY_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


def outcome(solve: Solve, packages: dict, requirements: list[str], **kwargs) -> str:
    """Lockfile JSON on success, the failure report otherwise."""
    try:
        result = solve(packages, requirements, **kwargs)
    except Unsatisfiable as exc:
        return "UNSAT\n" + exc.report()
    return Lockfile.from_graph(build_graph(result)).to_json()


class TestDeterminism:
    """Same inputs, same bytes."""

    @given(case=universes())
    @PROPERTY_SETTINGS
    def test_concurrency_does_not_change_outcome(
        self, solve: Solve, case: tuple[dict, list[str]]
    ) -> None:
        packages, requirements = case
        serial = outcome(solve, packages, requirements)
        assert outcome(solve, packages, requirements, concurrency=4) == serial
        assert outcome(solve, packages, requirements) == serial

    @given(case=universes())
    @PROPERTY_SETTINGS
    def test_lockfile_preferences_reproduce_lockfile(
        self, solve: Solve, case: tuple[dict, list[str]]
    ) -> None:
        packages, requirements = case
        try:
            first = solve(packages, requirements)
        except Unsatisfiable:
            return
        lockfile = Lockfile.from_graph(build_graph(first))
        policy = DecisionPolicy(preferences=lockfile.preferences())
        again = Lockfile.from_graph(build_graph(solve(packages, requirements, policy=policy)))
        assert again.to_json() == lockfile.to_json()
