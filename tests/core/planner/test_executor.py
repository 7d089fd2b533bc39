"""Tests for executing installation plans through the artifact cache."""

from __future__ import annotations

import threading

import pytest
from packaging.version import Version

from versolve.core.planner import (
    ArtifactCache,
    ArtifactMaterializer,
    CacheKey,
    InstallationPlanner,
    InstallPlan,
    PlanAction,
    PlanExecutor,
    PlanGroup,
    PlanStep,
)
from versolve.core.report import ResolvedGraph, ResolvedNode
from versolve.core.provider import VersionMetadata
from versolve.exceptions import PlanError

FINGERPRINT = "f" * 64


class RecordingMaterializer(ArtifactMaterializer):
    """Returns fake locations and records every call."""

    def __init__(self, fail: str | None = None) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def _record(self, verb: str, name: str, version: Version) -> str:
        with self._lock:
            self.calls.append((verb, name))
        if name == self.fail:
            raise OSError("disk full")
        return f"/artifacts/{name}-{version}.{verb}"

    def fetch(self, name: str, version: Version, key: CacheKey) -> str:
        return self._record("fetch", name, version)

    def build(self, name: str, version: Version, key: CacheKey) -> str:
        return self._record("build", name, version)


def make_graph() -> ResolvedGraph:
    nodes = {
        "a": ResolvedNode("a", Version("1.0"), metadata=VersionMetadata(Version("1.0"))),
        "b": ResolvedNode(
            "b", Version("2.0"), metadata=VersionMetadata(Version("2.0"), has_wheel=False)
        ),
    }
    return ResolvedGraph(nodes=nodes)


def make_plan(cache: ArtifactCache) -> InstallPlan:
    return InstallationPlanner(cache, FINGERPRINT).plan(make_graph())


class TestPlanExecutor:
    """Fetch or build each step, then reuse on the next run."""

    def test_fetches_and_builds(self) -> None:
        cache = ArtifactCache()
        materializer = RecordingMaterializer()
        outcomes = PlanExecutor(cache).execute(make_plan(cache), materializer)
        assert [(o.step.name, o.materialized) for o in outcomes] == [("a", True), ("b", True)]
        assert sorted(materializer.calls) == [("build", "b"), ("fetch", "a")]
        assert outcomes[1].entry.location == "/artifacts/b-2.0.build"
        assert outcomes[1].entry.artifact == "sdist"

    def test_second_plan_reuses_cache(self) -> None:
        cache = ArtifactCache()
        PlanExecutor(cache).execute(make_plan(cache), RecordingMaterializer())

        replan = make_plan(cache)
        assert replan.count(PlanAction.REUSE) == 2
        materializer = RecordingMaterializer()
        outcomes = PlanExecutor(cache, concurrency=1).execute(replan, materializer)
        assert materializer.calls == []
        assert not any(o.materialized for o in outcomes)

    def test_failure_names_the_step(self) -> None:
        cache = ArtifactCache()
        with pytest.raises(PlanError, match=r"Failed to materialize b==2\.0") as excinfo:
            PlanExecutor(cache).execute(make_plan(cache), RecordingMaterializer(fail="b"))
        assert "disk full" in str(excinfo.value)
        assert cache.lookup(CacheKey("b", "2.0", FINGERPRINT)) is None

    def test_refresh_step_materializes_again(self) -> None:
        cache = ArtifactCache()
        key = CacheKey("a", "1.0", FINGERPRINT)
        cache.get_or_materialize(key, "wheel", lambda: "stale")
        step = PlanStep(PlanAction.FETCH, "a", Version("1.0"), key, refresh=True)
        outcome = PlanExecutor(cache).run_step(step, RecordingMaterializer())
        assert outcome.materialized
        assert outcome.entry.location == "/artifacts/a-1.0.fetch"

    def test_empty_plan(self) -> None:
        assert PlanExecutor(ArtifactCache()).execute(InstallPlan(), RecordingMaterializer()) == []

    def test_duplicate_keys_materialize_once(self) -> None:
        cache = ArtifactCache()
        key = CacheKey("a", "1.0", FINGERPRINT)
        steps = tuple(PlanStep(PlanAction.FETCH, "a", Version("1.0"), key) for _ in range(6))
        materializer = RecordingMaterializer()
        outcomes = PlanExecutor(cache, concurrency=6).execute(
            InstallPlan(groups=[PlanGroup(steps)]), materializer
        )
        assert materializer.calls == [("fetch", "a")]
        assert sum(o.materialized for o in outcomes) == 1

    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError):
            PlanExecutor(ArtifactCache(), concurrency=0)
