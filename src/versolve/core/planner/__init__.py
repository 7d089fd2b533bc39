"""Installation planning and the artifact cache.

Submodules:
    cache     -- CacheKey, CacheEntry, CacheStore backends, ArtifactCache
    planner   -- InstallationPlanner, InstallPlan, PlanStep, PlanGroup
    executor  -- PlanExecutor and the ArtifactMaterializer interface
"""

from versolve.core.planner.cache import (
    ArtifactCache,
    CacheEntry,
    CacheKey,
    CacheStore,
    FileCacheStore,
    InMemoryCacheStore,
)
from versolve.core.planner.executor import ArtifactMaterializer, PlanExecutor, StepOutcome
from versolve.core.planner.planner import (
    InstallationPlanner,
    InstallPlan,
    PlanAction,
    PlanGroup,
    PlanStep,
    strongly_connected_components,
)

__all__ = [
    "ArtifactCache",
    "ArtifactMaterializer",
    "CacheEntry",
    "CacheKey",
    "CacheStore",
    "FileCacheStore",
    "InMemoryCacheStore",
    "InstallPlan",
    "InstallationPlanner",
    "PlanAction",
    "PlanExecutor",
    "PlanGroup",
    "PlanStep",
    "StepOutcome",
    "strongly_connected_components",
]
