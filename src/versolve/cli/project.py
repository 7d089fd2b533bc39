"""Shared option handling for the resolution commands.

``resolve`` and ``plan`` accept the same inputs: requirement strings, an
optional requirements file, a ``versolve.yaml`` project file and option
overrides. This module turns them into a ``ResolverConfig``, a metadata
provider and a ``ResolutionRequest``, and maps versolve exceptions to
the CLI's exit codes.

Exit Codes:
    0 - Success.
    1 - The requirements are unsatisfiable.
    2 - Invalid input: requirement, configuration or lockfile error.
    3 - Metadata unavailable, or the installation plan cannot be derived.
"""

from __future__ import annotations

import functools
import sys
from pathlib import Path
from typing import Callable

import click

from versolve.config import DEFAULT_CONFIG_NAME, ResolverConfig
from versolve.core.lockfile import Lockfile
from versolve.core.provider import InMemoryProvider, MetadataProvider
from versolve.core.solver import ResolutionMode
from versolve.core.version import PrereleaseMode
from versolve.exceptions import (
    Cancelled,
    ConfigError,
    LockfileError,
    MetadataUnavailable,
    PlanError,
    RequirementError,
    Unsatisfiable,
)
from versolve.resolver import ResolutionRequest

EXIT_OK = 0
EXIT_UNSATISFIABLE = 1
EXIT_INVALID = 2
EXIT_UNAVAILABLE = 3


def resolution_options(command: Callable) -> Callable:
    """Attach the options shared by every resolving command."""
    options = [
        click.argument("requirements", nargs=-1),
        click.option(
            "--config", "-c", "config_path",
            type=click.Path(dir_okay=False),
            default=None,
            help=f"Project file (default: ./{DEFAULT_CONFIG_NAME} if present).",
        ),
        click.option(
            "--requirements-file", "-r",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="Read requirements from a file, one per line.",
        ),
        click.option(
            "--index",
            type=click.Path(dir_okay=False),
            default=None,
            help="YAML package index file.",
        ),
        click.option(
            "--resolution",
            type=click.Choice([m.value for m in ResolutionMode]),
            default=None,
            help="Prefer the newest (default) or lowest compatible versions.",
        ),
        click.option(
            "--prerelease",
            type=click.Choice([m.value for m in PrereleaseMode]),
            default=None,
            help="Pre-release policy (default: if-necessary-or-explicit).",
        ),
        click.option(
            "--concurrency",
            type=click.IntRange(min=1),
            default=None,
            help="Maximum concurrent metadata prefetches.",
        ),
        click.option(
            "--python-version",
            default=None,
            help="Target Python version for markers and Requires-Python.",
        ),
        click.option(
            "--lockfile",
            type=click.Path(dir_okay=False),
            default=None,
            help="Lockfile to prefer versions from and write the result to.",
        ),
        click.option(
            "--upgrade",
            is_flag=True,
            default=False,
            help="Ignore the versions pinned in an existing lockfile.",
        ),
        click.option(
            "--offline",
            is_flag=True,
            default=False,
            help="Disable index lookups.",
        ),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def load_config(
    config_path: str | None,
    requirements: tuple[str, ...],
    requirements_file: str | None,
    **overrides,
) -> ResolverConfig:
    """Build the effective configuration.

    Requirements given on the command line or in a file replace the ones
    from the project file.
    """
    if config_path is not None:
        config = ResolverConfig.load(Path(config_path))
    elif Path(DEFAULT_CONFIG_NAME).is_file():
        config = ResolverConfig.load(Path(DEFAULT_CONFIG_NAME))
    else:
        config = ResolverConfig()

    python_version = overrides.pop("python_version", None)
    for key in ("index", "lockfile"):
        if overrides.get(key) is not None:
            overrides[key] = Path(overrides[key])
    config = config.merged(**overrides)
    if python_version is not None:
        config.environment = {**config.environment, "python_version": python_version}

    lines = list(requirements)
    if requirements_file is not None:
        lines.extend(Path(requirements_file).read_text(encoding="utf-8").splitlines())
    if lines:
        config.requirements = lines
    return config


def load_provider(config: ResolverConfig, offline: bool) -> MetadataProvider:
    """The in-memory provider for the configured index file.

    Raises:
        ConfigError: If no index is configured and lookups are enabled.
    """
    if config.index is None:
        if offline:
            return InMemoryProvider(offline=True)
        raise ConfigError("No package index configured; pass --index or set 'index'")
    return InMemoryProvider.from_yaml(config.index, offline=offline)


def build_request(config: ResolverConfig, upgrade: bool) -> ResolutionRequest:
    """Request for ``config``, preferring an existing lockfile unless upgrading."""
    request = ResolutionRequest(
        requirements=list(config.requirements),
        environment=config.target_environment(),
        mode=config.resolution,
        prerelease=config.prerelease,
        concurrency=config.concurrency,
        index_revision=config.index_revision,
    )
    if not upgrade and config.lockfile is not None and config.lockfile.is_file():
        request = request.with_lockfile(Lockfile.read(config.lockfile))
    return request


def exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, Unsatisfiable):
        return EXIT_UNSATISFIABLE
    if isinstance(exc, (RequirementError, ConfigError, LockfileError)):
        return EXIT_INVALID
    if isinstance(exc, (MetadataUnavailable, PlanError, Cancelled)):
        return EXIT_UNAVAILABLE
    return EXIT_INVALID


def guarded(command: Callable) -> Callable:
    """Report versolve errors through the output layer and exit with their code."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except (
            Unsatisfiable,
            RequirementError,
            ConfigError,
            LockfileError,
            MetadataUnavailable,
            PlanError,
            Cancelled,
        ) as exc:
            from versolve.cli.output import print_error

            print_error(exc)
            sys.exit(exit_code_for(exc))

    return wrapper
