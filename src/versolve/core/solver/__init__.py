"""Conflict-driven incremental version solving.

Submodules:
    term              -- Term and SetRelation
    incompatibility   -- Incompatibility, causes, IncompatibilityStore (arena)
    partial_solution  -- Assignment and PartialSolution
    policy            -- ResolutionMode, CandidateFilter, DecisionPolicy
    solver            -- VersionSolver, SolverResult, CancellationToken
"""

from versolve.core.solver.incompatibility import (
    ConflictCause,
    DependencyCause,
    Incompatibility,
    IncompatibilityStore,
    NoVersionsCause,
    NotFoundCause,
    RequiresPythonCause,
    RootCause,
)
from versolve.core.solver.partial_solution import Assignment, PartialSolution
from versolve.core.solver.policy import CandidateFilter, DecisionPolicy, ResolutionMode
from versolve.core.solver.solver import (
    ROOT_VERSION,
    CancellationToken,
    SolverResult,
    VersionSolver,
    explicit_prereleases,
)
from versolve.core.solver.term import SetRelation, Term

__all__ = [
    "Assignment",
    "CancellationToken",
    "CandidateFilter",
    "ConflictCause",
    "DecisionPolicy",
    "DependencyCause",
    "Incompatibility",
    "IncompatibilityStore",
    "NoVersionsCause",
    "NotFoundCause",
    "PartialSolution",
    "ROOT_VERSION",
    "RequiresPythonCause",
    "ResolutionMode",
    "RootCause",
    "SetRelation",
    "SolverResult",
    "Term",
    "VersionSolver",
    "explicit_prereleases",
]
