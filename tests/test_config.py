"""Tests for versolve.yaml loading and command-line overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from versolve.config import ResolverConfig
from versolve.core.solver import ResolutionMode
from versolve.core.version import PrereleaseMode
from versolve.exceptions import ConfigError

FULL_CONFIG = """\
requirements:
  - requests>=2.28
  - rich[jupyter]; python_version >= "3.8"
resolution: lowest
prerelease: allow
concurrency: 4
environment:
  python_version: "3.11"
  sys_platform: linux
index: index.yaml
cache_dir: .cache
lockfile: out/versolve.lock
index_revision: 2024-06-01
"""


class TestLoad:
    """Files are validated key by key."""

    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / "versolve.yaml"
        path.write_text(FULL_CONFIG, encoding="utf-8")
        config = ResolverConfig.load(path)
        assert config.requirements == ["requests>=2.28", 'rich[jupyter]; python_version >= "3.8"']
        assert config.resolution is ResolutionMode.LOWEST
        assert config.prerelease is PrereleaseMode.ALLOW
        assert config.concurrency == 4
        assert config.environment == {"python_version": "3.11", "sys_platform": "linux"}
        assert config.index == tmp_path / "index.yaml"
        assert config.cache_dir == tmp_path / ".cache"
        assert config.lockfile == tmp_path / "out" / "versolve.lock"
        assert config.index_revision == "2024-06-01"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "versolve.yaml"
        path.write_text("", encoding="utf-8")
        config = ResolverConfig.load(path)
        assert config == ResolverConfig()

    def test_requirements_as_block_text(self) -> None:
        config = ResolverConfig.from_mapping({"requirements": "a>=1\nb\n"})
        assert config.requirements == ["a>=1", "b"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read config file"):
            ResolverConfig.load(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "versolve.yaml"
        path.write_text("requirements: [a", encoding="utf-8")
        with pytest.raises(ConfigError, match="not valid YAML"):
            ResolverConfig.load(path)

    @pytest.mark.parametrize(
        "data, message",
        [
            ([], "must be a mapping"),
            ({"resolutoin": "newest"}, "Unknown configuration keys: resolutoin"),
            ({"resolution": "oldest"}, "'resolution' must be one of: newest, lowest"),
            ({"prerelease": "sometimes"}, "'prerelease' must be one of"),
            ({"concurrency": 0}, "positive integer"),
            ({"concurrency": True}, "positive integer"),
            ({"requirements": {"a": 1}}, "list of requirement strings"),
            ({"environment": ["linux"]}, "mapping of marker names"),
        ],
    )
    def test_invalid_values(self, data: object, message: str) -> None:
        with pytest.raises(ConfigError, match=message):
            ResolverConfig.from_mapping(data)


class TestMerged:
    def test_overrides_skip_none(self) -> None:
        base = ResolverConfig(requirements=["a"], concurrency=2)
        merged = base.merged(requirements=None, concurrency=8, resolution="lowest")
        assert merged.requirements == ["a"]
        assert merged.concurrency == 8
        assert merged.resolution is ResolutionMode.LOWEST
        assert base.concurrency == 2

    def test_invalid_override(self) -> None:
        with pytest.raises(ConfigError):
            ResolverConfig().merged(prerelease="never")


class TestTargetEnvironment:
    def test_overrides_apply(self) -> None:
        env = ResolverConfig(environment={"sys_platform": "win32"}).target_environment()
        assert env.markers["sys_platform"] == "win32"

    def test_defaults_to_running_interpreter(self) -> None:
        env = ResolverConfig().target_environment()
        assert env.python_version is not None
