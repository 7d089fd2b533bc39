"""Installation planning: resolved graph in, ordered action list out.

The planner condenses the resolved graph into strongly connected
components (Tarjan), emits them dependencies-first, and classifies every
package:

- ``reuse``: the artifact cache already holds an entry for its key;
- ``fetch``: a built distribution is published;
- ``build``: only a source distribution is published.

A package with neither kind of distribution cannot be planned. Members of
a dependency cycle form one group and are installed together.

When the target environment's current contents are known, packages
already installed at the resolved version are reported as satisfied and
get no action, and installed packages absent from the graph are reported
as extraneous.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from versolve.core.planner.cache import ArtifactCache, CacheKey
from versolve.exceptions import PlanError

logger = logging.getLogger(__name__)


class PlanAction(str, Enum):
    REUSE = "reuse"
    FETCH = "fetch"
    BUILD = "build"


@dataclass(frozen=True)
class PlanStep:
    """One package's action.

    Attributes:
        action: What to do.
        name: Canonical package name.
        version: Resolved version.
        cache_key: Key the artifact is (or will be) cached under.
        artifact: "wheel" or "sdist".
        refresh: Materialize again even if the cache holds an entry.
        replaces: Currently installed version this step replaces, if any.
    """

    action: PlanAction
    name: str
    version: Version
    cache_key: CacheKey
    artifact: str = "wheel"
    refresh: bool = False
    replaces: str | None = None


@dataclass(frozen=True)
class PlanGroup:
    """Steps installed together; more than one only for dependency cycles."""

    steps: tuple[PlanStep, ...]
    cyclic: bool = False

    @property
    def names(self) -> list[str]:
        return [step.name for step in self.steps]


@dataclass
class InstallPlan:
    """Ordered installation plan.

    Attributes:
        groups: Groups in installation order (dependencies first).
        satisfied: Packages already installed at the resolved version.
        extraneous: Installed packages the resolution does not include.
    """

    groups: list[PlanGroup] = field(default_factory=list)
    satisfied: list[str] = field(default_factory=list)
    extraneous: list[str] = field(default_factory=list)

    @property
    def steps(self) -> list[PlanStep]:
        return [step for group in self.groups for step in group.steps]

    def count(self, action: PlanAction) -> int:
        return sum(1 for step in self.steps if step.action is action)

    def step_for(self, name: str) -> PlanStep | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [
                {
                    "cyclic": group.cyclic,
                    "steps": [
                        {
                            "action": step.action.value,
                            "name": step.name,
                            "version": str(step.version),
                            "cache_key": step.cache_key.digest,
                            "replaces": step.replaces,
                        }
                        for step in group.steps
                    ],
                }
                for group in self.groups
            ],
            "satisfied": list(self.satisfied),
            "extraneous": list(self.extraneous),
        }


def strongly_connected_components(
    nodes: Iterable[str], edges: Mapping[str, Iterable[str]]
) -> list[list[str]]:
    """Tarjan's algorithm, iteratively.

    Components come out in reverse topological order of the condensation:
    a component is emitted after every component it has an edge to. With
    edges pointing from dependents to dependencies, that is installation
    order. Nodes are visited in sorted order so the output is deterministic.
    """
    adjacency = {node: sorted(set(edges.get(node, ()))) for node in nodes}
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    components: list[list[str]] = []
    counter = 0

    for start in sorted(adjacency):
        if start in index:
            continue
        index[start] = low[start] = counter
        counter += 1
        stack.append(start)
        on_stack.add(start)
        work = [(start, iter(adjacency[start]))]

        while work:
            node, neighbours = work[-1]
            descended = False
            for nxt in neighbours:
                if nxt not in adjacency:
                    continue
                if nxt not in index:
                    index[nxt] = low[nxt] = counter
                    counter += 1
                    stack.append(nxt)
                    on_stack.add(nxt)
                    work.append((nxt, iter(adjacency[nxt])))
                    descended = True
                    break
                if nxt in on_stack:
                    low[node] = min(low[node], index[nxt])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])
            if low[node] == index[node]:
                component: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(sorted(component))
    return components


class InstallationPlanner:
    """Derives an ``InstallPlan`` from a ``ResolvedGraph``.

    Args:
        cache: Artifact cache consulted for reuse.
        fingerprint: Target environment fingerprint used in cache keys.
        installed: Currently installed packages, name -> version.
        reinstall: Reinstall every package even if already satisfied.
        reinstall_packages: Reinstall only these packages.
        refresh: Ignore every cached entry.
        refresh_packages: Ignore cached entries of these packages only.
    """

    def __init__(
        self,
        cache: ArtifactCache,
        fingerprint: str,
        installed: Mapping[str, str] | None = None,
        reinstall: bool = False,
        reinstall_packages: Iterable[str] = (),
        refresh: bool = False,
        refresh_packages: Iterable[str] = (),
    ) -> None:
        self.cache = cache
        self.fingerprint = fingerprint
        self.installed = {
            canonicalize_name(name): str(version) for name, version in (installed or {}).items()
        }
        self.reinstall = reinstall
        self.reinstall_packages = frozenset(canonicalize_name(n) for n in reinstall_packages)
        self.refresh = refresh
        self.refresh_packages = frozenset(canonicalize_name(n) for n in refresh_packages)

    def plan(self, graph: Any) -> InstallPlan:
        """Order and classify every node of ``graph``.

        Raises:
            PlanError: If a package has neither a built nor a source
                distribution.
        """
        edges: dict[str, set[str]] = {name: set() for name in graph.nodes}
        self_loops: set[str] = set()
        for edge in graph.edges:
            if edge.source is None or edge.target not in graph.nodes:
                continue
            edges[edge.source].add(edge.target)
            if edge.source == edge.target:
                self_loops.add(edge.source)

        plan = InstallPlan()
        for component in strongly_connected_components(graph.nodes, edges):
            cyclic = len(component) > 1 or component[0] in self_loops
            steps = []
            for name in component:
                step = self._classify(graph.nodes[name])
                if step is None:
                    plan.satisfied.append(name)
                else:
                    steps.append(step)
            if steps:
                plan.groups.append(PlanGroup(tuple(steps), cyclic))

        plan.satisfied.sort()
        plan.extraneous = sorted(name for name in self.installed if name not in graph.nodes)
        logger.debug(
            "planned %d step(s): %d reuse, %d fetch, %d build",
            len(plan.steps),
            plan.count(PlanAction.REUSE),
            plan.count(PlanAction.FETCH),
            plan.count(PlanAction.BUILD),
        )
        return plan

    def _is_satisfied(self, name: str, version: Version) -> bool:
        current = self.installed.get(name)
        if current is None or self.reinstall or name in self.reinstall_packages:
            return False
        try:
            return Version(str(current)) == version
        except InvalidVersion:
            return False

    def _classify(self, node: Any) -> PlanStep | None:
        if self._is_satisfied(node.name, node.version):
            return None

        key = CacheKey(node.name, str(node.version), self.fingerprint)
        replaces = self.installed.get(node.name)
        replaces = str(replaces) if replaces is not None else None
        refresh = self.refresh or node.name in self.refresh_packages

        artifact = node.artifact
        if not artifact:
            raise PlanError(
                f"{node.name}=={node.version} publishes neither a built "
                f"distribution nor a source distribution"
            )

        if not refresh and self.cache.lookup(key) is not None:
            action = PlanAction.REUSE
        elif artifact == "wheel":
            action = PlanAction.FETCH
        else:
            action = PlanAction.BUILD
        return PlanStep(
            action=action,
            name=node.name,
            version=node.version,
            cache_key=key,
            artifact=artifact,
            refresh=refresh,
            replaces=replaces,
        )
