"""Shared fixtures for versolve tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from versolve.core.provider import InMemoryProvider, MetadataProvider
from versolve.core.requirements import Environment, parse_requirements
from versolve.core.solver import SolverResult, VersionSolver


@pytest.fixture
def environment() -> Environment:
    """A fixed Linux / CPython 3.11 target."""
    return Environment.from_mapping({"python_version": "3.11", "sys_platform": "linux"})


@pytest.fixture
def solve(environment: Environment) -> Callable[..., SolverResult]:
    """Solve requirement strings against an in-memory package universe.

    Usage: ``solve({"a": {"1.0": ["b"]}, "b": {"1.0": None}}, ["a"])``.
    Extra keyword arguments go to ``VersionSolver``.
    """

    def _solve(packages: Any, requirements: list[str], **kwargs: Any) -> SolverResult:
        provider = packages if isinstance(packages, MetadataProvider) else InMemoryProvider(packages)
        kwargs.setdefault("environment", environment)
        return VersionSolver(parse_requirements(requirements), provider, **kwargs).solve()

    return _solve


def selected(result: SolverResult) -> dict[str, str]:
    """Decided subjects (root excluded) as ``{"name[extra]": "version"}``."""
    return {
        str(subject): str(version)
        for subject, version in result.decisions.items()
        if not subject.is_root
    }


@pytest.fixture
def versions_of() -> Callable[[SolverResult], dict[str, str]]:
    return selected
