"""``versolve plan`` - Resolve, then derive an installation plan.

The plan lists every resolved package in install order (dependencies
before dependents, dependency cycles grouped) with one action each:
reuse a cached artifact, fetch a built distribution, or build from
source.

Exit Codes:
    0 - Plan derived.
    1 - The requirements are unsatisfiable.
    2 - Invalid requirement, configuration, lockfile or inventory.
    3 - Metadata unavailable, or a package has no usable artifact.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml

from versolve.cli.project import (
    build_request,
    guarded,
    load_config,
    load_provider,
    resolution_options,
)
from versolve.core.planner import (
    ArtifactCache,
    FileCacheStore,
    InMemoryCacheStore,
    InstallationPlanner,
)
from versolve.exceptions import ConfigError
from versolve.resolver import resolve


def _load_installed(path: str | None) -> dict[str, str]:
    """Read the installed-package inventory (YAML or JSON mapping name -> version)."""
    if path is None:
        return {}
    text = Path(path).read_text(encoding="utf-8")
    try:
        data: Any = json.loads(text) if path.endswith(".json") else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse installed inventory {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Installed inventory {path} must map names to versions")
    return {str(name): str(version) for name, version in data.items()}


@click.command("plan")
@resolution_options
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Artifact cache directory (default: in-memory).",
)
@click.option(
    "--installed",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Installed packages as a YAML/JSON mapping of name to version.",
)
@click.option("--reinstall", is_flag=True, default=False, help="Reinstall every package.")
@click.option(
    "--reinstall-package",
    multiple=True,
    help="Reinstall this package (repeatable).",
)
@click.option("--refresh", is_flag=True, default=False, help="Ignore all cached artifacts.")
@click.option(
    "--refresh-package",
    multiple=True,
    help="Ignore cached artifacts of this package (repeatable).",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table).",
)
@guarded
def plan_command(
    requirements: tuple[str, ...],
    config_path: str | None,
    requirements_file: str | None,
    index: str | None,
    resolution: str | None,
    prerelease: str | None,
    concurrency: int | None,
    python_version: str | None,
    lockfile: str | None,
    upgrade: bool,
    offline: bool,
    cache_dir: str | None,
    installed: str | None,
    reinstall: bool,
    reinstall_package: tuple[str, ...],
    refresh: bool,
    refresh_package: tuple[str, ...],
    output_format: str,
) -> None:
    """Resolve REQUIREMENTS and print the installation plan."""
    from versolve.cli.output import print_json, print_plan, print_resolution_summary

    config = load_config(
        config_path,
        requirements,
        requirements_file,
        index=index,
        resolution=resolution,
        prerelease=prerelease,
        concurrency=concurrency,
        python_version=python_version,
        lockfile=lockfile,
        cache_dir=Path(cache_dir) if cache_dir else None,
    )
    provider = load_provider(config, offline)
    result = resolve(build_request(config, upgrade), provider)

    store = FileCacheStore(config.cache_dir) if config.cache_dir else InMemoryCacheStore()
    planner = InstallationPlanner(
        ArtifactCache(store),
        result.fingerprint,
        installed=_load_installed(installed),
        reinstall=reinstall,
        reinstall_packages=reinstall_package,
        refresh=refresh,
        refresh_packages=refresh_package,
    )
    plan = planner.plan(result.graph)

    if output_format == "json":
        print_json({"resolution": result.lockfile.to_dict(), "plan": plan.to_dict()})
    else:
        print_resolution_summary(result)
        print_plan(plan)
