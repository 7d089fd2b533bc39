"""Tests for ``versolve plan``.

Verifies:
    - Steps come out dependencies first, with fetch/build per artifact.
    - Dependency cycles share one group.
    - Cached artifacts are reused unless refreshed.
    - Installed inventories mark satisfied, replaced and extraneous packages.
"""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from versolve.cli.main import cli
from versolve.core.planner import ArtifactCache, CacheKey, FileCacheStore
from versolve.core.requirements import Environment

PY311 = ["--python-version", "3.11"]


def run_plan(runner: CliRunner, index_file: Path, *args: str) -> dict:
    result = runner.invoke(
        cli, ["plan", *args, "--index", str(index_file), *PY311, "--format", "json"]
    )
    assert result.exit_code == 0, result.output
    return json.loads(result.output)["plan"]


def steps_of(plan: dict) -> list[tuple[str, str]]:
    return [(s["name"], s["action"]) for g in plan["groups"] for s in g["steps"]]


class TestPlanOrder:
    """Install order and per-step actions."""

    def test_dependencies_first(self, runner: CliRunner, index_file: Path) -> None:
        plan = run_plan(runner, index_file, "app")
        assert steps_of(plan) == [("tls", "build"), ("web", "fetch"), ("app", "fetch")]
        assert not any(group["cyclic"] for group in plan["groups"])

    def test_cycle_is_one_group(self, runner: CliRunner, index_file: Path) -> None:
        plan = run_plan(runner, index_file, "loop-a")
        assert len(plan["groups"]) == 1
        group = plan["groups"][0]
        assert group["cyclic"] is True
        assert [s["name"] for s in group["steps"]] == ["loop-a", "loop-b"]

    def test_table_output(self, runner: CliRunner, index_file: Path) -> None:
        result = runner.invoke(cli, ["plan", "app", "--index", str(index_file), *PY311])
        assert result.exit_code == 0, result.output
        assert "Installation Plan" in result.output
        assert "Build: 1" in result.output

    def test_json_includes_resolution(self, runner: CliRunner, index_file: Path) -> None:
        result = runner.invoke(
            cli, ["plan", "lib", "--index", str(index_file), "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["resolution"]["packages"]["lib"]["version"] == "2.0"

    def test_no_artifact_exits_3(self, runner: CliRunner, index_file: Path) -> None:
        result = runner.invoke(cli, ["plan", "nodist", "--index", str(index_file)])
        assert result.exit_code == 3
        assert "nodist" in result.output


class TestPlanCache:
    """Reuse from a file cache keyed on the target fingerprint."""

    def _seed(self, cache_dir: Path, name: str, version: str) -> None:
        fingerprint = Environment.from_mapping({"python_version": "3.11"}).fingerprint()
        ArtifactCache(FileCacheStore(cache_dir)).get_or_materialize(
            CacheKey(name, version, fingerprint), "wheel", lambda: f"/artifacts/{name}"
        )

    def test_reuses_cached_artifact(
        self, runner: CliRunner, index_file: Path, tmp_path: Path
    ) -> None:
        cache_dir = tmp_path / "cache"
        self._seed(cache_dir, "web", "1.0")
        plan = run_plan(runner, index_file, "app", "--cache-dir", str(cache_dir))
        assert steps_of(plan) == [("tls", "build"), ("web", "reuse"), ("app", "fetch")]

    def test_refresh_package_ignores_cache(
        self, runner: CliRunner, index_file: Path, tmp_path: Path
    ) -> None:
        cache_dir = tmp_path / "cache"
        self._seed(cache_dir, "web", "1.0")
        plan = run_plan(
            runner, index_file, "app", "--cache-dir", str(cache_dir), "--refresh-package", "web"
        )
        assert ("web", "fetch") in steps_of(plan)

    def test_other_target_misses(
        self, runner: CliRunner, index_file: Path, tmp_path: Path
    ) -> None:
        cache_dir = tmp_path / "cache"
        self._seed(cache_dir, "lib", "2.0")
        result = runner.invoke(
            cli,
            [
                "plan", "lib", "--index", str(index_file), "--cache-dir", str(cache_dir),
                "--python-version", "3.12", "--format", "json",
            ],
        )
        assert result.exit_code == 0, result.output
        assert steps_of(json.loads(result.output)["plan"]) == [("lib", "fetch")]


class TestPlanInstalled:
    """An inventory of installed packages trims and annotates the plan."""

    def test_satisfied_replaced_and_extraneous(
        self, runner: CliRunner, index_file: Path, tmp_path: Path
    ) -> None:
        installed = tmp_path / "installed.yaml"
        installed.write_text("tls: '1.0'\nweb: '0.9'\nstale: '3.1'\n", encoding="utf-8")
        plan = run_plan(runner, index_file, "app", "--installed", str(installed))
        assert steps_of(plan) == [("web", "fetch"), ("app", "fetch")]
        assert plan["groups"][0]["steps"][0]["replaces"] == "0.9"
        assert plan["satisfied"] == ["tls"]
        assert plan["extraneous"] == ["stale"]

    def test_reinstall_package(
        self, runner: CliRunner, index_file: Path, tmp_path: Path
    ) -> None:
        installed = tmp_path / "installed.json"
        installed.write_text(json.dumps({"tls": "1.0"}), encoding="utf-8")
        plan = run_plan(
            runner, index_file, "app", "--installed", str(installed), "--reinstall-package", "tls"
        )
        first = plan["groups"][0]["steps"][0]
        assert (first["name"], first["action"], first["replaces"]) == ("tls", "build", "1.0")
        assert plan["satisfied"] == []

    def test_invalid_inventory_exits_2(
        self, runner: CliRunner, index_file: Path, tmp_path: Path
    ) -> None:
        installed = tmp_path / "installed.yaml"
        installed.write_text("- tls\n", encoding="utf-8")
        result = runner.invoke(
            cli, ["plan", "app", "--index", str(index_file), "--installed", str(installed)]
        )
        assert result.exit_code == 2
