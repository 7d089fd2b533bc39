"""Resolved dependency graph built from a successful solve.

Nodes are packages (one per canonical name) with their chosen version and
the extras that were activated on them. Edges record requirement
provenance: which package (or the root, ``source=None``) required which
package, with what specifier, under which marker, and on behalf of which
extra. Cycles are legal and kept as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from packaging.version import Version

from versolve.core.provider.base import VersionMetadata
from versolve.core.version import VersionRange

if TYPE_CHECKING:
    from versolve.core.solver import SolverResult


@dataclass(frozen=True)
class ResolvedNode:
    """One package in the resolved graph.

    Attributes:
        name: Canonical package name.
        version: The selected version.
        extras: Activated extras, sorted.
        metadata: Metadata of the selected version, when known.
    """

    name: str
    version: Version
    extras: tuple[str, ...] = ()
    metadata: Optional[VersionMetadata] = None

    @property
    def artifact(self) -> str:
        return self.metadata.artifact if self.metadata is not None else "wheel"


@dataclass(frozen=True)
class ResolvedEdge:
    """One requirement edge.

    Attributes:
        source: Requiring package, or None for a top-level requirement.
        target: Required package.
        range: The range the target's version must lie in.
        specifier: The specifier as written ("" for any version).
        marker: The marker that gated the requirement, if any.
        source_extra: The extra of ``source`` that contributed the edge.
        target_extra: The extra requested on ``target``.
    """

    source: Optional[str]
    target: str
    range: VersionRange
    specifier: str = ""
    marker: Optional[str] = None
    source_extra: Optional[str] = None
    target_extra: Optional[str] = None

    @property
    def sort_key(self) -> tuple:
        return (
            self.source or "",
            self.source_extra or "",
            self.target,
            self.target_extra or "",
            self.specifier,
            self.marker or "",
        )

    def describe(self) -> str:
        target = self.target if self.target_extra is None else f"{self.target}[{self.target_extra}]"
        text = f"{target}{self.specifier}"
        if self.marker:
            text += f"; {self.marker}"
        return text


@dataclass
class ResolvedGraph:
    """Packages and requirement edges of one resolution.

    Attributes:
        nodes: Canonical name -> node.
        edges: All edges, sorted deterministically.
        warnings: Warnings raised while solving.
        attempted_solutions: Solver attempts (1 means no backtracking).
    """

    nodes: dict[str, ResolvedNode] = field(default_factory=dict)
    edges: list[ResolvedEdge] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    attempted_solutions: int = 1

    def get(self, name: str) -> ResolvedNode | None:
        return self.nodes.get(name)

    def version_of(self, name: str) -> Version | None:
        node = self.nodes.get(name)
        return node.version if node is not None else None

    def dependencies_of(self, name: str | None) -> list[ResolvedEdge]:
        """Edges leaving ``name`` (None for the top-level requirements)."""
        return [edge for edge in self.edges if edge.source == name]

    def dependents_of(self, name: str) -> list[ResolvedEdge]:
        return [edge for edge in self.edges if edge.target == name]

    def check(self) -> list[str]:
        """Return soundness violations: edges whose target is missing or out of range.

        An empty list means every edge's target version satisfies the
        edge's range.
        """
        problems: list[str] = []
        for edge in self.edges:
            node = self.nodes.get(edge.target)
            source = edge.source or "root"
            if node is None:
                problems.append(f"{source} requires {edge.describe()} which was not resolved")
            elif not edge.range.contains(node.version):
                problems.append(
                    f"{source} requires {edge.describe()} but {node.name}=={node.version} was selected"
                )
        return problems

    def to_dict(self) -> dict[str, Any]:
        """Deterministic plain-data form: nodes sorted by name, edges by key."""
        return {
            "nodes": [
                {
                    "name": node.name,
                    "version": str(node.version),
                    "extras": list(node.extras),
                }
                for _, node in sorted(self.nodes.items())
            ],
            "edges": [
                {
                    "source": edge.source,
                    "source_extra": edge.source_extra,
                    "target": edge.target,
                    "target_extra": edge.target_extra,
                    "specifier": edge.specifier,
                    "marker": edge.marker,
                }
                for edge in self.edges
            ],
        }


def build_graph(result: SolverResult) -> ResolvedGraph:
    """Convert a solver result into a ``ResolvedGraph``.

    Each decided subject contributes its dependency edges; subjects with
    an extra fold into their base package's node. The edge from an extra
    subject to its own base package is implied by the node's extras and
    is not recorded.
    """
    versions: dict[str, Version] = {}
    extras: dict[str, set[str]] = {}
    for subject, version in result.decisions.items():
        if subject.is_root:
            continue
        versions[subject.name] = version
        bucket = extras.setdefault(subject.name, set())
        if subject.extra is not None:
            bucket.add(subject.extra)

    nodes = {
        name: ResolvedNode(
            name=name,
            version=versions[name],
            extras=tuple(sorted(extras[name])),
            metadata=result.metadata.get(name),
        )
        for name in sorted(versions)
    }

    edges: set[ResolvedEdge] = set()
    for subject, dependencies in result.dependencies.items():
        source = None if subject.is_root else subject.name
        for dependency in dependencies:
            if dependency.subject.name == source:
                continue
            edges.add(
                ResolvedEdge(
                    source=source,
                    target=dependency.subject.name,
                    range=dependency.range,
                    specifier=dependency.specifier,
                    marker=dependency.marker,
                    source_extra=subject.extra,
                    target_extra=dependency.subject.extra,
                )
            )

    return ResolvedGraph(
        nodes=nodes,
        edges=sorted(edges, key=lambda edge: edge.sort_key),
        warnings=list(result.warnings),
        attempted_solutions=result.attempted_solutions,
    )
