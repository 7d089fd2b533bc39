"""``versolve resolve`` - Resolve requirements and write a lockfile.

Exit Codes:
    0 - Resolution succeeded.
    1 - The requirements are unsatisfiable (the explanation is printed).
    2 - Invalid requirement, configuration or lockfile.
    3 - Package metadata could not be obtained.
"""

from __future__ import annotations

import click

from versolve.cli.project import (
    build_request,
    guarded,
    load_config,
    load_provider,
    resolution_options,
)
from versolve.resolver import resolve


@click.command("resolve")
@resolution_options
@click.option(
    "--format", "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table).",
)
@guarded
def resolve_command(
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
    output_format: str,
) -> None:
    """Resolve REQUIREMENTS to one consistent set of versions.

    Requirements come from the arguments, from --requirements-file, or
    from the project file. When a lockfile is configured, its versions
    are preferred (unless --upgrade) and the result is written back to it.
    """
    from versolve.cli.output import print_json, print_resolution_summary

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
    )
    provider = load_provider(config, offline)
    result = resolve(build_request(config, upgrade), provider)

    if config.lockfile is not None:
        result.lockfile.write(config.lockfile)

    if output_format == "json":
        print_json(result.lockfile.to_dict())
    else:
        print_resolution_summary(result)
        if config.lockfile is not None:
            click.echo(f"Lockfile written to {config.lockfile}")
