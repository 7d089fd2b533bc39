"""``versolve cache`` - Artifact cache maintenance."""

from __future__ import annotations

from pathlib import Path

import click

from versolve.cli.project import guarded
from versolve.config import DEFAULT_CONFIG_NAME, ResolverConfig
from versolve.core.planner import ArtifactCache, FileCacheStore


def _cache_dir(cache_dir: str | None, config_path: str | None) -> Path:
    if cache_dir is not None:
        return Path(cache_dir)
    path = Path(config_path) if config_path else Path(DEFAULT_CONFIG_NAME)
    if path.is_file():
        configured = ResolverConfig.load(path).cache_dir
        if configured is not None:
            return configured
    raise click.UsageError("No cache directory given; pass --cache-dir or set 'cache_dir'")


@click.group("cache")
def cache_group() -> None:
    """Inspect and maintain the artifact cache."""


@cache_group.command("clear")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Artifact cache directory (default: from the project file).",
)
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Project file (default: ./{DEFAULT_CONFIG_NAME} if present).",
)
@guarded
def cache_clear_command(cache_dir: str | None, config_path: str | None) -> None:
    """Remove every cached artifact entry."""
    from versolve.cli.output import console

    root = _cache_dir(cache_dir, config_path)
    removed = ArtifactCache(FileCacheStore(root)).clear()
    console.print(f"Removed [bold]{removed}[/bold] cache entr{'y' if removed == 1 else 'ies'} from {root}")
