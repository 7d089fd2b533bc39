"""Rich output formatting helpers for the versolve CLI.

Provides consistent terminal output for resolution summaries, failure
explanations, installation plans and cache operations.

Action Color Mapping:
    reuse = green, fetch = cyan, build = yellow
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from versolve.core.planner import InstallPlan, PlanAction
from versolve.exceptions import Unsatisfiable, VersolveError
from versolve.resolver import Resolution

_ACTION_STYLES: dict[PlanAction, str] = {
    PlanAction.REUSE: "green",
    PlanAction.FETCH: "cyan",
    PlanAction.BUILD: "yellow",
}

console = Console()


def action_style(action: PlanAction) -> str:
    """Return the Rich style string for a plan action."""
    return _ACTION_STYLES.get(action, "white")


def print_resolution_summary(resolution: Resolution) -> None:
    """Print the resolved packages and any warnings."""
    graph = resolution.graph
    console.print(
        Panel(
            f"[bold green]Resolved {len(graph.nodes)} package(s)[/bold green]",
            title="Dependency Resolution",
        )
    )
    if graph.nodes:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Package", style="bold")
        table.add_column("Version")
        table.add_column("Extras", style="dim")
        table.add_column("Required by", style="dim")
        for name, node in sorted(graph.nodes.items()):
            parents = sorted({edge.source or "root" for edge in graph.dependents_of(name)})
            table.add_row(
                name,
                str(node.version),
                ", ".join(node.extras) or "-",
                ", ".join(parents),
            )
        console.print(table)
    else:
        console.print("[dim]No packages to resolve.[/dim]")

    for warning in resolution.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")


def print_unsatisfiable(exc: Unsatisfiable) -> None:
    """Print the failure explanation and hints."""
    console.print(
        Panel("[bold red]No solution found[/bold red]", title="Dependency Resolution")
    )
    for line in exc.explanation:
        console.print(Text(str(line)))
    for hint in exc.hints:
        console.print(Text(f"hint: {hint}", style="cyan"))


def print_error(exc: VersolveError) -> None:
    """Print any versolve error; unsatisfiable results get the full explanation."""
    if isinstance(exc, Unsatisfiable):
        print_unsatisfiable(exc)
        return
    console.print(Text(f"error: {exc}", style="bold red"))


def print_plan(plan: InstallPlan) -> None:
    """Print the installation plan, one row per step in install order."""
    table = Table(title="Installation Plan", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action", justify="center")
    table.add_column("Package", style="bold")
    table.add_column("Version")
    table.add_column("Notes", style="dim")

    for number, group in enumerate(plan.groups, start=1):
        for step in group.steps:
            notes = []
            if group.cyclic:
                notes.append("cycle: " + ", ".join(group.names))
            if step.replaces is not None:
                notes.append(f"replaces {step.replaces}")
            table.add_row(
                str(number),
                Text(step.action.value, style=action_style(step.action)),
                step.name,
                str(step.version),
                "; ".join(notes),
            )
    console.print(table)

    console.print(
        f"  Reuse: [green]{plan.count(PlanAction.REUSE)}[/green]  "
        f"Fetch: [cyan]{plan.count(PlanAction.FETCH)}[/cyan]  "
        f"Build: [yellow]{plan.count(PlanAction.BUILD)}[/yellow]"
    )
    if plan.satisfied:
        console.print(f"  Already satisfied: {', '.join(plan.satisfied)}")
    if plan.extraneous:
        console.print(f"  Extraneous: {', '.join(plan.extraneous)}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout."""
    console.print_json(json.dumps(data, default=str))
