"""
Rich-formatted output for the waybar-manager commands.

Every function takes an optional Console so tests and the CLI can share one.
"""

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .errors import WaybarManagerError
from .models import AssignmentPlan, DisplayMode, Monitor, Settings, VariantName, WindowManagerKind
from .orchestrator import ExitOutcome, RunResult
from .reconciler import ReconcileAction, ReconcileReport


ACTION_STYLES = {
    ReconcileAction.WRITTEN: "green",
    ReconcileAction.UNCHANGED: "dim",
    ReconcileAction.DELETED: "yellow",
    ReconcileAction.FAILED: "red",
}


def display_error(error: WaybarManagerError, console: Optional[Console] = None) -> None:
    """Print a fatal error with its recovery hint."""
    if console is None:
        console = Console(stderr=True)

    console.print(f"[red]Error: {error.message}[/red]")
    if error.suggestion:
        console.print(f"[dim]Tip: {error.suggestion}[/dim]")


def display_monitors(
    kind: Optional[WindowManagerKind],
    monitors: Sequence[Monitor],
    console: Optional[Console] = None,
) -> None:
    """Numbered list of connected monitors."""
    if console is None:
        console = Console()

    title = f"Monitors ({kind.display_name})" if kind else "Monitors"
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")

    for monitor in monitors:
        table.add_row(str(monitor.position + 1), monitor.name)

    console.print(table)


def display_assignment(plan: AssignmentPlan, console: Optional[Console] = None) -> None:
    """Which variant each monitor receives."""
    if console is None:
        console = Console()

    table = Table(title="Assignment")
    table.add_column("Monitor", style="cyan")
    table.add_column("Variant")

    for assignment in plan.assignments:
        if assignment.variant == VariantName.FULL:
            variant = "[bold green]full[/bold green]"
        else:
            variant = "simple"
        table.add_row(assignment.monitor.name, variant)

    console.print(table)
    if plan.fallback_used:
        console.print(
            f"[yellow]Preferred monitor '{plan.preferred}' not connected, "
            f"full bar on {plan.full_monitor.name}[/yellow]"
        )


def display_reconcile(report: ReconcileReport, console: Optional[Console] = None) -> None:
    """Per-file outcome table."""
    if console is None:
        console = Console()

    title = "Generated configs (dry run)" if report.dry_run else "Generated configs"
    table = Table(title=title)
    table.add_column("File", style="cyan")
    table.add_column("Monitor")
    table.add_column("Outcome")
    table.add_column("Reason", style="dim")

    for outcome in report.outcomes:
        style = ACTION_STYLES[outcome.action]
        label = outcome.action.value
        if report.dry_run and outcome.action in (ReconcileAction.WRITTEN, ReconcileAction.DELETED):
            label = f"would be {label}"
        table.add_row(
            outcome.path.name,
            outcome.monitor,
            f"[{style}]{label}[/{style}]",
            outcome.reason or "",
        )

    console.print(table)
    console.print(f"[dim]{report.summary()}[/dim]")


def display_settings(settings: Settings, console: Optional[Console] = None) -> None:
    """Persisted display preferences."""
    if console is None:
        console = Console()

    display = settings.display
    table = Table(title="Settings", show_header=False)
    table.add_column("Property", style="dim")
    table.add_column("Value")

    table.add_row("Mode", display.mode.value)
    table.add_row("Preferred monitor", display.preferred_monitor or "[dim](none)[/dim]")
    table.add_row("Available monitors", ", ".join(display.available_monitors) or "[dim](none)[/dim]")

    console.print(table)


def display_check(result: RunResult, console: Optional[Console] = None) -> None:
    """Full report of a check run: topology, assignment and pending file changes."""
    if console is None:
        console = Console()

    if result.kind:
        console.print(f"\n[bold cyan]Window manager: {result.kind.display_name}[/bold cyan]\n")

    if result.monitors:
        display_monitors(result.kind, result.monitors, console)
        console.print()

    if result.settings:
        display = result.settings.display
        table = Table(title="Configured vs connected", show_header=False)
        table.add_column("Property", style="dim")
        table.add_column("Value")
        table.add_row("Mode", display.mode.value)
        table.add_row("Configured", ", ".join(display.available_monitors) or "[dim](none)[/dim]")
        table.add_row("Connected", ", ".join(m.name for m in result.monitors))
        table.add_row("Matches", ", ".join(result.matches) or "[dim](none)[/dim]")
        if result.topology_changed:
            table.add_row("Status", "[yellow]Differences detected[/yellow]")
        else:
            table.add_row("Status", "[green]Up to date[/green]")
        console.print(table)
        console.print()

        if result.topology_changed and display.mode == DisplayMode.MULTIPLE:
            console.print("[dim]Tip: Run 'waybar-manager launch --force-update' to accept the connected monitors[/dim]")
            console.print()

    if result.plan:
        display_assignment(result.plan, console)
        console.print()

    if result.report:
        display_reconcile(result.report, console)
        console.print()

    for warning in result.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    display_status(result, console)


def display_status(result: RunResult, console: Optional[Console] = None) -> None:
    """One-line overall status."""
    if console is None:
        console = Console()

    if result.outcome == ExitOutcome.OK:
        console.print(Text("Everything is correct", style="bold green"))
    elif result.outcome == ExitOutcome.FILE_ERRORS:
        failed = len(result.report.failed) if result.report else 0
        console.print(Text(
            f"Completed with errors ({failed} file(s), {len(result.launch_failures)} bar(s))",
            style="bold yellow",
        ))
    elif result.error is not None:
        display_error(result.error, console)
