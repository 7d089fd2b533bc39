"""Resolution reports: the resolved graph and failure explanations.

Submodules:
    graph    -- ResolvedGraph, ResolvedNode, ResolvedEdge, build_graph
    explain  -- ExplanationLine, explain, describe, collect_hints
"""

from versolve.core.report.explain import (
    ExplanationLine,
    collect_hints,
    describe,
    describe_pair,
    explain,
)
from versolve.core.report.graph import (
    ResolvedEdge,
    ResolvedGraph,
    ResolvedNode,
    build_graph,
)

__all__ = [
    "ExplanationLine",
    "ResolvedEdge",
    "ResolvedGraph",
    "ResolvedNode",
    "build_graph",
    "collect_hints",
    "describe",
    "describe_pair",
    "explain",
]
