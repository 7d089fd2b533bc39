"""End-to-end solver scenarios over in-memory package universes."""

from __future__ import annotations

from typing import Callable

import pytest

from versolve.core.provider import InMemoryProvider
from versolve.core.requirements import Subject
from versolve.core.solver import DecisionPolicy, ResolutionMode, SolverResult
from versolve.core.version import Version
from versolve.exceptions import Unsatisfiable

Solve = Callable[..., SolverResult]
Selected = Callable[[SolverResult], dict[str, str]]


# ===========================================================================
# Successful resolutions
# ===========================================================================


class TestBasicResolution:
    """Straightforward dependency graphs."""

    def test_no_requirements(self, solve: Solve, versions_of: Selected) -> None:
        result = solve({}, [])
        assert versions_of(result) == {}
        assert Subject.root() in result.decisions

    def test_transitive_dependencies(self, solve: Solve, versions_of: Selected) -> None:
        packages = {
            "a": {"1.0": ["b>=1.0"]},
            "b": {"1.0": ["c"], "2.0": ["c<2"]},
            "c": {"1.0": None, "2.0": None},
        }
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0", "b": "2.0", "c": "1.0"}

    def test_newest_and_lowest_modes(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"1.0": None, "1.5": None, "2.0": None}}
        newest = solve(packages, ["a>=1.0,<2.0"])
        lowest = solve(
            packages, ["a>=1.0,<2.0"], policy=DecisionPolicy(ResolutionMode.LOWEST)
        )
        assert versions_of(newest) == {"a": "1.5"}
        assert versions_of(lowest) == {"a": "1.0"}

    def test_backtracks_to_older_version(self, solve: Solve, versions_of: Selected) -> None:
        packages = {
            "a": {"2.0": ["c==2.0"], "1.0": ["c==1.0"]},
            "b": {"1.0": ["c==1.0"]},
            "c": {"1.0": None, "2.0": None},
        }
        result = solve(packages, ["a", "b"])
        assert versions_of(result) == {"a": "1.0", "b": "1.0", "c": "1.0"}

    def test_dependency_cycle(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"1.0": ["b"]}, "b": {"1.0": ["a"]}}
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0", "b": "1.0"}

    def test_self_dependency_is_ignored(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"1.0": ["a>=1.0"]}}
        result = solve(packages, ["a"])
        assert versions_of(result) == {"a": "1.0"}
        assert result.dependencies[Subject.of("a")] == []

    def test_names_are_normalized(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"Foo_Bar": {"1.0": ["Baz.Qux"]}, "baz-qux": {"1.0": None}}
        assert versions_of(solve(packages, ["foo.bar"])) == {"foo-bar": "1.0", "baz-qux": "1.0"}

    def test_result_carries_edges_and_metadata(self, solve: Solve) -> None:
        packages = {"a": {"1.0": ["b>=1; python_version >= '3'"]}, "b": {"1.0": None}}
        result = solve(packages, ["a"])
        (edge,) = result.dependencies[Subject.of("a")]
        assert edge.subject == Subject.of("b")
        assert edge.specifier == ">=1"
        assert edge.marker == 'python_version >= "3"'
        assert set(result.metadata) == {"a", "b"}
        assert result.store is not None and len(result.store) > 0


class TestMarkersAndExtras:
    def test_markers_skip_other_platforms(self, solve: Solve, versions_of: Selected) -> None:
        packages = {
            "a": {"1.0": ["winonly; sys_platform == 'win32'", "b"]},
            "b": {"1.0": None},
        }
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0", "b": "1.0"}

    def test_extra_pulls_in_its_dependencies(self, solve: Solve, versions_of: Selected) -> None:
        packages = {
            "a": {"1.0": ["b", "c; extra == 'x'"]},
            "b": {"1.0": None},
            "c": {"1.0": None},
        }
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0", "b": "1.0"}
        assert versions_of(solve(packages, ["a[x]"])) == {
            "a": "1.0",
            "a[x]": "1.0",
            "b": "1.0",
            "c": "1.0",
        }

    def test_extra_pins_base_to_same_version(self, solve: Solve, versions_of: Selected) -> None:
        packages = {
            "a": {"2.0": None, "1.0": ["c; extra == 'x'"]},
            "c": {"1.0": None},
        }
        result = versions_of(solve(packages, ["a[x]", "a<2"]))
        assert result["a"] == result["a[x]"] == "1.0"
        assert result["c"] == "1.0"


class TestYankedAndPrereleases:
    def test_yanked_skipped_by_default(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"2.0": {"yanked": True}, "1.0": None}}
        result = solve(packages, ["a"])
        assert versions_of(result) == {"a": "1.0"}
        assert result.warnings == []

    def test_yanked_used_when_pinned(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"2.0": {"yanked": True}, "1.0": None}}
        result = solve(packages, ["a==2.0"])
        assert versions_of(result) == {"a": "2.0"}
        assert result.warnings == ["a==2.0 is yanked"]

    def test_only_yanked_is_unsatisfiable(self, solve: Solve) -> None:
        with pytest.raises(Unsatisfiable):
            solve({"a": {"1.0": {"yanked": True}}}, ["a"])

    def test_prerelease_avoided_when_final_exists(
        self, solve: Solve, versions_of: Selected
    ) -> None:
        packages = {"a": {"2.0b1": None, "1.0": None}}
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0"}

    def test_prerelease_when_explicitly_requested(
        self, solve: Solve, versions_of: Selected
    ) -> None:
        packages = {"a": {"2.0b1": None, "1.0": None}}
        assert versions_of(solve(packages, ["a>=2.0b1"])) == {"a": "2.0b1"}

    def test_prerelease_when_necessary(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"1.0": ["b"]}, "b": {"2.0rc1": None}}
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0", "b": "2.0rc1"}


class TestLocalAndPostReleases:
    """Local builds and post-releases are matched the PEP 440 way."""

    def test_equal_pin_accepts_local_build(self, solve: Solve, versions_of: Selected) -> None:
        assert versions_of(solve({"a": {"1.0+cpu": None}}, ["a==1.0"])) == {"a": "1.0+cpu"}

    def test_less_or_equal_accepts_local_build(
        self, solve: Solve, versions_of: Selected
    ) -> None:
        packages = {"a": {"1.0+cpu": None, "1.0.post1": None}}
        assert versions_of(solve(packages, ["a<=1.0"])) == {"a": "1.0+cpu"}

    def test_greater_than_skips_post_releases(self, solve: Solve) -> None:
        packages = {"a": {"1.0": None, "1.0.post1": None, "1.0+cpu": None}}
        with pytest.raises(Unsatisfiable) as excinfo:
            solve(packages, ["a>1.0"])
        assert "a >1.0" in excinfo.value.report()

    def test_not_equal_excludes_local_build(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"1.0+cpu": None, "0.9": None}}
        assert versions_of(solve(packages, ["a!=1.0"])) == {"a": "0.9"}


class TestPreferences:
    def test_lockfile_preference_is_kept(self, solve: Solve, versions_of: Selected) -> None:
        packages = {"a": {"1.0": None, "2.0": None}}
        policy = DecisionPolicy(preferences={"a": Version("1.0")})
        assert versions_of(solve(packages, ["a"], policy=policy)) == {"a": "1.0"}

    def test_preference_outside_range_is_ignored(
        self, solve: Solve, versions_of: Selected
    ) -> None:
        packages = {"a": {"1.0": None, "2.0": None}}
        policy = DecisionPolicy(preferences={"a": Version("1.0")})
        assert versions_of(solve(packages, ["a>=2"], policy=policy)) == {"a": "2.0"}


# ===========================================================================
# Failures
# ===========================================================================


class TestUnsatisfiable:
    """Failures carry a readable derivation."""

    def test_conflicting_pins(self, solve: Solve) -> None:
        packages = {
            "a": {"1.0": ["b==1.0"]},
            "c": {"1.0": ["b==2.0"]},
            "b": {"1.0": None, "2.0": None},
        }
        with pytest.raises(Unsatisfiable) as excinfo:
            solve(packages, ["a", "c"])
        report = excinfo.value.report()
        assert "b ==1.0" in report
        assert "b ==2.0" in report
        assert report.rstrip().endswith("version solving failed.")
        assert excinfo.value.failure_id is not None

    def test_missing_package(self, solve: Solve) -> None:
        with pytest.raises(Unsatisfiable) as excinfo:
            solve({}, ["nothere"])
        report = excinfo.value.report()
        assert "root depends on nothere which doesn't exist" in report
        assert "'nothere' was not found" in report

    def test_no_matching_version(self, solve: Solve) -> None:
        with pytest.raises(Unsatisfiable) as excinfo:
            solve({"a": {"1.0": None}}, ["a>=2"])
        assert "a >=2" in excinfo.value.report()

    def test_requires_python_mismatch(self, solve: Solve) -> None:
        packages = {"a": {"2.0": {"requires_python": ">=3.12"}}}
        with pytest.raises(Unsatisfiable) as excinfo:
            solve(packages, ["a"])
        assert "requires Python >=3.12 (the target Python is 3.11)" in excinfo.value.report()

    def test_requires_python_falls_back_to_older(
        self, solve: Solve, versions_of: Selected
    ) -> None:
        packages = {"a": {"2.0": {"requires_python": ">=3.12"}, "1.0": None}}
        assert versions_of(solve(packages, ["a"])) == {"a": "1.0"}

    def test_offline_hint(self, solve: Solve) -> None:
        provider = InMemoryProvider({"a": {"1.0": None}}, offline=True)
        with pytest.raises(Unsatisfiable) as excinfo:
            solve(provider, ["a"])
        assert any("index lookups were disabled" in h for h in excinfo.value.hints)
        assert "hint: " in excinfo.value.report()
