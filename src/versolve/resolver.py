"""Resolution request/result boundary.

``resolve`` is the one call a caller needs: it takes a
``ResolutionRequest`` (requirement strings, target environment, mode
flags, optional prior lockfile) and a metadata provider, runs the solver,
and returns the resolved graph together with the lockfile that records it.

Example::

    request = ResolutionRequest(requirements=["requests>=2.28"])
    resolution = resolve(request, InMemoryProvider.from_yaml(Path("index.yaml")))
    resolution.lockfile.write(Path("versolve.lock"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from packaging.version import Version

from versolve.core.lockfile import Lockfile
from versolve.core.provider import MetadataProvider
from versolve.core.report import ResolvedGraph, build_graph
from versolve.core.requirements import Environment, parse_requirements
from versolve.core.solver import (
    CancellationToken,
    CandidateFilter,
    DecisionPolicy,
    ResolutionMode,
    VersionSolver,
    explicit_prereleases,
)
from versolve.core.version import PrereleaseMode

logger = logging.getLogger(__name__)


@dataclass
class ResolutionRequest:
    """Inputs of one resolution.

    Attributes:
        requirements: Top-level PEP 508 requirement strings.
        environment: Target environment; the running interpreter if None.
        mode: ``newest`` or ``lowest``.
        prerelease: Pre-release policy.
        preferences: Prior versions by name (for example from a lockfile).
        concurrency: Metadata prefetch concurrency (1 disables it).
        index_revision: Opaque index revision mixed into the fingerprint.
    """

    requirements: list[str]
    environment: Environment | None = None
    mode: ResolutionMode = ResolutionMode.NEWEST
    prerelease: PrereleaseMode = PrereleaseMode.IF_NECESSARY_OR_EXPLICIT
    preferences: Mapping[str, Version] = field(default_factory=dict)
    concurrency: int = 1
    index_revision: str = ""

    def with_lockfile(self, lockfile: Lockfile) -> ResolutionRequest:
        """Copy of this request preferring the versions in ``lockfile``."""
        preferences = dict(self.preferences)
        preferences.update(lockfile.preferences())
        return ResolutionRequest(
            requirements=list(self.requirements),
            environment=self.environment,
            mode=self.mode,
            prerelease=self.prerelease,
            preferences=preferences,
            concurrency=self.concurrency,
            index_revision=self.index_revision,
        )


@dataclass
class Resolution:
    """Successful resolution result.

    Attributes:
        graph: The resolved dependency graph.
        lockfile: Lockfile recording the graph.
        fingerprint: Target environment fingerprint (cache keys use it).
    """

    graph: ResolvedGraph
    lockfile: Lockfile
    fingerprint: str

    @property
    def warnings(self) -> list[str]:
        return self.graph.warnings


def resolve(
    request: ResolutionRequest,
    provider: MetadataProvider,
    cancel: CancellationToken | None = None,
) -> Resolution:
    """Resolve ``request`` against ``provider``.

    Raises:
        RequirementError: If a requirement string is invalid.
        Unsatisfiable: If no version set satisfies the requirements.
        MetadataUnavailable: If the provider fails for a package.
        Cancelled: If ``cancel`` is triggered.
    """
    requirements = parse_requirements(request.requirements)
    environment = request.environment or Environment.current()
    mode = ResolutionMode(request.mode)
    prerelease = PrereleaseMode(request.prerelease)

    solver = VersionSolver(
        requirements,
        provider,
        environment=environment,
        policy=DecisionPolicy(mode=mode, preferences=dict(request.preferences)),
        candidate_filter=CandidateFilter(prerelease, explicit_prereleases(requirements)),
        concurrency=request.concurrency,
        cancel=cancel,
    )
    logger.debug(
        "resolving %d requirement(s) mode=%s prerelease=%s",
        len(requirements),
        mode.value,
        prerelease.value,
    )
    result = solver.solve()
    graph = build_graph(result)

    fingerprint = environment.fingerprint(request.index_revision)
    lockfile = Lockfile.from_graph(
        graph, mode=mode.value, prerelease=prerelease.value, fingerprint=fingerprint
    )
    return Resolution(graph=graph, lockfile=lockfile, fingerprint=fingerprint)
