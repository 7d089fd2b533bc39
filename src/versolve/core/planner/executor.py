"""Plan execution through the artifact cache.

Fetching and building are external concerns: the executor drives an
``ArtifactMaterializer`` and records each result in the cache under the
step's key, so the next plan for the same (name, version, fingerprint)
reuses it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from packaging.version import Version

from versolve.core.planner.cache import ArtifactCache, CacheEntry, CacheKey
from versolve.core.planner.planner import InstallPlan, PlanAction, PlanStep
from versolve.exceptions import PlanError

logger = logging.getLogger(__name__)


class ArtifactMaterializer(ABC):
    """Produces artifacts; returns the location each was stored at."""

    @abstractmethod
    def fetch(self, name: str, version: Version, key: CacheKey) -> str:
        """Download a built distribution."""

    @abstractmethod
    def build(self, name: str, version: Version, key: CacheKey) -> str:
        """Build a distribution from source."""


@dataclass(frozen=True)
class StepOutcome:
    """Result of executing one plan step.

    Attributes:
        step: The executed step.
        entry: The cache entry the step ended with.
        materialized: True if this execution fetched or built the artifact.
    """

    step: PlanStep
    entry: CacheEntry
    materialized: bool


class PlanExecutor:
    """Runs plan steps on a bounded thread pool.

    Args:
        cache: The shared artifact cache.
        concurrency: Maximum concurrent materializations.
    """

    def __init__(self, cache: ArtifactCache, concurrency: int = 4) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.cache = cache
        self.concurrency = concurrency

    def execute(self, plan: InstallPlan, materializer: ArtifactMaterializer) -> list[StepOutcome]:
        """Execute every step; outcomes are returned in plan order.

        Raises:
            PlanError: If the materializer fails for any step.
        """
        steps = plan.steps
        if not steps:
            return []
        with ThreadPoolExecutor(
            max_workers=min(self.concurrency, len(steps)),
            thread_name_prefix="versolve-materialize",
        ) as pool:
            futures = [pool.submit(self.run_step, step, materializer) for step in steps]
            return [future.result() for future in futures]

    def run_step(self, step: PlanStep, materializer: ArtifactMaterializer) -> StepOutcome:
        """Execute one step under the key's cache lock."""
        if step.action is PlanAction.FETCH or (
            step.action is PlanAction.REUSE and step.artifact == "wheel"
        ):
            verb, produce = "Fetching", materializer.fetch
        else:
            verb, produce = "Building", materializer.build

        def materialize() -> str:
            logger.info("%s %s==%s", verb, step.name, step.version)
            try:
                return produce(step.name, step.version, step.cache_key)
            except Exception as exc:
                raise PlanError(
                    f"Failed to materialize {step.name}=={step.version} "
                    f"(cache key {step.cache_key.digest}): {exc}"
                ) from exc

        entry, created = self.cache.get_or_materialize(
            step.cache_key, step.artifact, materialize, refresh=step.refresh
        )
        return StepOutcome(step, entry, created)
