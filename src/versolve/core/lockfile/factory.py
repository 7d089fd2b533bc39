"""Lockfile factory: constructing lockfiles from resolved graphs.

``from_graph`` is the entry point in the normal workflow::

    graph = build_graph(VersionSolver(requirements, provider).solve())
    lockfile = Lockfile.from_graph(graph, fingerprint=env.fingerprint())
    lockfile.write(Path("versolve.lock"))
"""

from __future__ import annotations

from typing import Any

from versolve.core.lockfile.models import LockedDependency, LockedPackage


def _edge(edge: Any) -> LockedDependency:
    return LockedDependency(
        name=edge.target,
        specifier=edge.specifier,
        marker=edge.marker,
        extra=edge.target_extra,
        via=edge.source_extra,
    )


def _from_graph(
    cls: type,
    graph: Any,
    mode: str = "newest",
    prerelease: str = "if-necessary-or-explicit",
    fingerprint: str = "",
) -> Any:
    """Create a lockfile from a ``ResolvedGraph``.

    Args:
        graph: The resolved graph of a successful resolution.
        mode: Resolution mode the graph was produced with.
        prerelease: Pre-release policy the graph was produced with.
        fingerprint: Target environment fingerprint.

    Returns:
        A new ``Lockfile`` populated from the graph.
    """
    lf = cls()
    for name, node in sorted(graph.nodes.items()):
        metadata = node.metadata
        lf.add_package(
            LockedPackage(
                name=name,
                version=str(node.version),
                extras=list(node.extras),
                dependencies=[_edge(edge) for edge in graph.dependencies_of(name)],
                artifact=node.artifact,
                requires_python=metadata.requires_python if metadata is not None else "",
            )
        )
    for edge in graph.dependencies_of(None):
        lf.add_requirement(_edge(edge))

    lf.metadata.resolution_mode = str(getattr(mode, "value", mode))
    lf.metadata.prerelease_mode = str(getattr(prerelease, "value", prerelease))
    lf.metadata.environment_fingerprint = fingerprint
    return lf
