"""Project configuration loaded from ``versolve.yaml``.

Example file::

    requirements:
      - requests>=2.28
      - rich[jupyter]; python_version >= "3.8"
    resolution: newest            # or: lowest
    prerelease: if-necessary-or-explicit
    concurrency: 4
    environment:
      python_version: "3.11"
      sys_platform: linux
    index: index.yaml             # in-memory index file
    cache_dir: .versolve-cache
    lockfile: versolve.lock
    index_revision: "2024-06-01"

Relative paths are resolved against the directory holding the file.
Command-line options override values from the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from versolve.core.requirements import Environment
from versolve.core.solver import ResolutionMode
from versolve.core.version import PrereleaseMode
from versolve.exceptions import ConfigError

DEFAULT_CONFIG_NAME = "versolve.yaml"

_KNOWN_KEYS = {
    "requirements",
    "resolution",
    "prerelease",
    "concurrency",
    "environment",
    "index",
    "cache_dir",
    "lockfile",
    "index_revision",
}


@dataclass
class ResolverConfig:
    """Settings for one project.

    Attributes:
        requirements: Top-level requirement strings.
        resolution: Version preference mode.
        prerelease: Pre-release policy.
        concurrency: Metadata prefetch concurrency.
        environment: Marker overrides applied on top of the running
            interpreter's environment.
        index: Path to a YAML index file, if any.
        cache_dir: Artifact cache directory, if any (in-memory otherwise).
        lockfile: Lockfile path, if any.
        index_revision: Opaque index revision mixed into cache keys.
    """

    requirements: list[str] = field(default_factory=list)
    resolution: ResolutionMode = ResolutionMode.NEWEST
    prerelease: PrereleaseMode = PrereleaseMode.IF_NECESSARY_OR_EXPLICIT
    concurrency: int = 1
    environment: dict[str, str] = field(default_factory=dict)
    index: Path | None = None
    cache_dir: Path | None = None
    lockfile: Path | None = None
    index_revision: str = ""

    @classmethod
    def load(cls, path: Path) -> ResolverConfig:
        """Read and validate a configuration file.

        Raises:
            ConfigError: If the file cannot be read, is not valid YAML, or
                contains unknown keys or invalid values.
        """
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
        return cls.from_mapping(raw or {}, base_dir=path.parent)

    @classmethod
    def from_mapping(cls, data: Any, base_dir: Path | None = None) -> ResolverConfig:
        """Validate a parsed mapping and build a config from it."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")
        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        base = base_dir or Path(".")
        config = cls()

        requirements = data.get("requirements", [])
        if isinstance(requirements, str):
            requirements = requirements.splitlines()
        if not isinstance(requirements, list):
            raise ConfigError("'requirements' must be a list of requirement strings")
        config.requirements = [str(line) for line in requirements]

        if "resolution" in data:
            config.resolution = _enum(ResolutionMode, data["resolution"], "resolution")
        if "prerelease" in data:
            config.prerelease = _enum(PrereleaseMode, data["prerelease"], "prerelease")

        concurrency = data.get("concurrency", 1)
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise ConfigError(f"'concurrency' must be a positive integer, got {concurrency!r}")
        config.concurrency = concurrency

        environment = data.get("environment") or {}
        if not isinstance(environment, dict):
            raise ConfigError("'environment' must be a mapping of marker names to values")
        config.environment = {str(k): str(v) for k, v in environment.items()}

        for key in ("index", "cache_dir", "lockfile"):
            value = data.get(key)
            if value is not None:
                setattr(config, key, base / str(value))

        config.index_revision = str(data.get("index_revision") or "")
        return config

    def merged(self, **overrides: Any) -> ResolverConfig:
        """Copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        if "resolution" in values:
            values["resolution"] = _enum(ResolutionMode, values["resolution"], "resolution")
        if "prerelease" in values:
            values["prerelease"] = _enum(PrereleaseMode, values["prerelease"], "prerelease")
        return replace(self, **values)

    def target_environment(self) -> Environment:
        if not self.environment:
            return Environment.current()
        return Environment.from_mapping(self.environment)


def _enum(kind: type, value: Any, key: str):
    try:
        return kind(str(value))
    except ValueError as exc:
        allowed = ", ".join(member.value for member in kind)
        raise ConfigError(f"'{key}' must be one of: {allowed} (got {value!r})") from exc
