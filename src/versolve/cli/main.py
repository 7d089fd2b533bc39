"""versolve CLI: dependency resolution and installation planning.

Entry point for the ``versolve`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    resolve    - Resolve requirements and write a lockfile.
    plan       - Resolve, then derive an installation plan.
    cache      - Inspect and clear the artifact cache.

Usage::

    versolve resolve "requests>=2.28" --index index.yaml
    versolve resolve -c versolve.yaml --lockfile versolve.lock
    versolve resolve --resolution lowest --format json
    versolve plan -c versolve.yaml --installed installed.yaml
    versolve cache clear --cache-dir .versolve-cache
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from versolve import __version__
from versolve.cli.cache_cmd import cache_group
from versolve.cli.plan_cmd import plan_command
from versolve.cli.resolve_cmd import resolve_command


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log solver steps.")
def cli(verbose: bool) -> None:
    """versolve: a PubGrub dependency resolver and installation planner.

    Finds one consistent set of package versions for a set of
    requirements, or explains why none exists, then plans how to install
    that set reusing a content-addressed artifact cache.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
        )


cli.add_command(resolve_command)
cli.add_command(plan_command)
cli.add_command(cache_group)
