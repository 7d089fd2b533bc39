"""Property-based tests cross-checking the solver against a SAT oracle.

Random universes of a few packages with final-release versions are
encoded the OPIUM way (one Boolean per package version, at-most-one per
package, implications for dependencies) and handed to Glucose3 via
python-sat. The solver must agree with the oracle on satisfiability,
and every solution it returns must satisfy the encoding:

- Completeness: the oracle finds an assignment -> the solver does too
- Soundness: at most one version per package, every dependency and
  top-level requirement satisfied
- Failure: the oracle proves UNSAT -> the solver raises Unsatisfiable
"""

from __future__ import annotations

import itertools
from typing import Callable

from hypothesis import HealthCheck, given, settings
from packaging.specifiers import SpecifierSet
from packaging.version import Version
from pysat.solvers import Solver

from versolve.core.solver import SolverResult
from versolve.exceptions import Unsatisfiable

from tests.properties.strategies import universes

# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------


def _split(requirement: str) -> tuple[str, SpecifierSet]:
    return requirement[:2], SpecifierSet(requirement[2:])


def oracle_satisfiable(packages: dict, requirements: list[str]) -> bool:
    variables: dict[tuple[str, str], int] = {}
    for name, versions in packages.items():
        for version in versions:
            variables[(name, version)] = len(variables) + 1

    def matching(requirement: str) -> list[int]:
        name, specifier = _split(requirement)
        return [
            variables[(name, version)]
            for version in packages.get(name, {})
            if specifier.contains(Version(version))
        ]

    clauses: list[list[int]] = []
    for name, versions in packages.items():
        ids = [variables[(name, v)] for v in versions]
        clauses.extend([-x, -y] for x, y in itertools.combinations(ids, 2))
    for requirement in requirements:
        options = matching(requirement)
        if not options:
            return False
        clauses.append(options)
    for (name, version), var in variables.items():
        for requirement in packages[name][version]:
            clauses.append([-var] + matching(requirement))

    with Solver(name="g3", bootstrap_with=clauses) as solver:
        return solver.solve()


def check_solution(result: SolverResult, packages: dict, requirements: list[str]) -> None:
    chosen = {s.name: str(v) for s, v in result.decisions.items() if not s.is_root}
    assert all(s.extra is None for s in result.decisions)
    for requirement in requirements:
        name, specifier = _split(requirement)
        assert name in chosen, requirement
        assert specifier.contains(Version(chosen[name])), (requirement, chosen)
    for name, version in chosen.items():
        for requirement in packages[name][version]:
            target, specifier = _split(requirement)
            assert target in chosen, (name, version, requirement)
            assert specifier.contains(Version(chosen[target])), (name, requirement, chosen)


# ---------------------------------------------------------------------------
# Agreement
# ---------------------------------------------------------------------------


class TestAgreesWithSatOracle:
    """The solver and the SAT encoding agree on every random universe."""

    @given(case=universes())
    @settings(
        max_examples=60,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_satisfiability_and_soundness(
        self, solve: Callable[..., SolverResult], case: tuple[dict, list[str]]
    ) -> None:
        packages, requirements = case
        expected = oracle_satisfiable(packages, requirements)
        try:
            result = solve(packages, requirements)
        except Unsatisfiable as exc:
            assert not expected, exc.report()
            assert exc.explanation
        else:
            assert expected
            check_solution(result, packages, requirements)
