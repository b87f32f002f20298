"""
waybar-manager command line interface.

Usage:
    waybar-manager [--debug] [launch [--verbose] [--force-update] [--no-bar]]
    waybar-manager check [--verbose]
    waybar-manager monitors
    waybar-manager config
    waybar-manager init

Exit codes:
  0 - Success
  1 - Some generated files (or bars) failed
  2 - Fatal error (no window manager, no monitors, bad template or settings)
"""

import sys
from typing import Sequence

import click
from rich.console import Console

from . import __version__
from .bar import WaybarLauncher, notify
from .displays import (
    display_assignment,
    display_check,
    display_error,
    display_monitors,
    display_reconcile,
    display_settings,
    display_status,
)
from .errors import WaybarManagerError
from .logging_config import setup_logging
from .models import DisplayMode
from .orchestrator import ExitOutcome, Orchestrator, RunMode, RunResult
from .paths import Paths
from .settings import SettingsStore, configure_multiple, configure_single, parse_monitor_numbers
from .window_manager import detect_backend


def _prompt_update(configured: Sequence[str], connected: Sequence[str]) -> bool:
    """Ask whether to store the connected monitors; non-interactive runs decline."""
    if not sys.stdin.isatty():
        return False

    console = Console()
    console.print("[yellow]Differences were detected in the monitors[/yellow]")
    console.print(f"  Configured: {', '.join(configured) or '(none)'}")
    console.print(f"  Connected:  {', '.join(connected)}")
    return click.confirm("Update 'available_monitors' in the settings?", default=False)


def _orchestrator(ctx: click.Context) -> Orchestrator:
    """Build an orchestrator from context collaborators (overridable via obj)."""
    obj = ctx.obj
    paths = obj.get("paths") or Paths.from_environment()
    return Orchestrator(
        paths=paths,
        detector=obj.get("detector", detect_backend),
        confirm=obj.get("confirm", _prompt_update),
        launcher=obj.get("launcher") or WaybarLauncher(),
        notifier=obj.get("notifier", notify),
    )


def _exit(result: RunResult, console: Console) -> None:
    if result.error is not None:
        display_error(result.error, console)
    sys.exit(result.exit_code)


def _monitor_numbers(text: str) -> Sequence[int]:
    try:
        return parse_monitor_numbers(text)
    except ValueError:
        raise click.BadParameter("enter monitor numbers separated by commas")


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging (subprocess calls, marker binding)')
@click.version_option(__version__, prog_name="waybar-manager")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """Generate per-monitor Waybar configurations from a template and launch them.

    Without a command, runs 'launch'.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        ctx.invoke(launch)


@cli.command()
@click.option('--verbose', '-v', is_flag=True, help='Show every decision and the per-file outcome table')
@click.option('--force-update', is_flag=True, help='Store connected monitors in the settings without asking')
@click.option('--no-bar', is_flag=True, help='Generate configs but do not restart Waybar')
@click.pass_context
def launch(ctx: click.Context, verbose: bool = False, force_update: bool = False, no_bar: bool = False):
    """
    Generate configs for the connected monitors and (re)start Waybar.

    Files whose content is unchanged are not rewritten; configs for monitors
    that are no longer connected are removed.
    """
    setup_logging(verbose=verbose, debug=ctx.obj.get("debug", False))
    console = Console()

    result = _orchestrator(ctx).run(RunMode.LAUNCH, force_update=force_update, launch_bar=not no_bar)

    if result.outcome != ExitOutcome.FATAL:
        if verbose:
            if result.plan:
                display_assignment(result.plan, console)
            if result.report:
                display_reconcile(result.report, console)

        if result.settings_updated:
            console.print("[green]Settings updated with the connected monitors[/green]")

        for monitor, reason in result.launch_failures.items():
            console.print(f"[red]Error: waybar could not be started on {monitor}: {reason}[/red]")
        if result.report:
            for outcome in result.report.failed:
                console.print(f"[red]Error: {outcome.path}: {outcome.reason}[/red]")

        if result.launched:
            console.print(f"[green]Waybar started on {', '.join(result.launched)}[/green]")
        if result.report:
            console.print(f"Files: {result.report.summary()}")
        display_status(result, console)

    _exit(result, console)


@cli.command()
@click.option('--verbose', '-v', is_flag=True, help='Log every decision while checking')
@click.pass_context
def check(ctx: click.Context, verbose: bool):
    """
    Report what 'launch' would do without writing anything.

    Shows configured vs connected monitors, the assignment and which
    generated files would be written or deleted.
    """
    setup_logging(verbose=verbose, debug=ctx.obj.get("debug", False))
    console = Console()

    result = _orchestrator(ctx).run(RunMode.CHECK)
    display_check(result, console)
    sys.exit(result.exit_code)


@cli.command()
@click.pass_context
def monitors(ctx: click.Context):
    """List the monitors reported by the window manager."""
    setup_logging(debug=ctx.obj.get("debug", False))
    console = Console()

    result = _orchestrator(ctx).run(RunMode.MONITORS)
    if result.outcome != ExitOutcome.FATAL:
        display_monitors(result.kind, result.monitors, console)

    _exit(result, console)


@cli.command()
@click.pass_context
def init(ctx: click.Context):
    """Create the settings file with defaults."""
    setup_logging(debug=ctx.obj.get("debug", False))
    console = Console()
    paths = ctx.obj.get("paths") or Paths.from_environment()
    store = SettingsStore(paths.settings_file)

    try:
        created = store.init()
    except WaybarManagerError as e:
        display_error(e, console)
        sys.exit(int(ExitOutcome.FATAL))

    if created:
        console.print(f"[green]Configuration file created in: {paths.settings_file}[/green]")
    else:
        console.print(f"[yellow]Configuration file already exists: {paths.settings_file}[/yellow]")

    console.print(f"[dim]Templates are read from: {paths.templates_dir}[/dim]")
    sys.exit(int(ExitOutcome.OK))


@cli.command()
@click.pass_context
def config(ctx: click.Context):
    """
    Interactively choose the display mode and the main monitor.

    Single mode runs one full bar on the chosen monitor; multiple mode puts
    the full bar on the main monitor and a simple bar on every other one.
    """
    setup_logging(debug=ctx.obj.get("debug", False))
    console = Console()
    paths = ctx.obj.get("paths") or Paths.from_environment()
    store = SettingsStore(paths.settings_file)

    result = _orchestrator(ctx).run(RunMode.MONITORS)
    if result.outcome == ExitOutcome.FATAL:
        _exit(result, console)

    connected = [m.name for m in result.monitors]
    display_monitors(result.kind, result.monitors, console)

    mode = click.prompt(
        "Configure Waybar for",
        type=click.Choice([m.value for m in DisplayMode]),
        default=DisplayMode.MULTIPLE.value,
    )

    try:
        settings = store.load()
        if mode == DisplayMode.SINGLE.value:
            number = 1
            if len(connected) > 1:
                number = click.prompt(
                    "Monitor number for Waybar",
                    type=click.IntRange(1, len(connected)),
                )
            settings = configure_single(settings, connected, number)
        else:
            number = click.prompt(
                "Main monitor number (full setup)",
                type=click.IntRange(1, len(connected)),
                default=1,
            )
            secondary = None
            if len(connected) > 1:
                secondary = click.prompt(
                    "Secondary monitors to keep (comma-separated numbers, empty for all)",
                    default="",
                    show_default=False,
                    value_proc=_monitor_numbers,
                )
            settings = configure_multiple(settings, connected, number, secondary)
        store.save(settings)
    except WaybarManagerError as e:
        display_error(e, console)
        sys.exit(int(ExitOutcome.FATAL))

    display_settings(settings, console)
    console.print("[green]Configuration saved successfully[/green]")
    console.print("[dim]Run 'waybar-manager launch' to apply the changes.[/dim]")
    sys.exit(int(ExitOutcome.OK))


if __name__ == '__main__':
    cli()
