import logging
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dotswap.config import load_config, save_global_config, state_file
from dotswap.engine import ProfileEngine
from dotswap.errors import DotswapError
from dotswap.log import read_logs, write_log
from dotswap.paths import resolve
from dotswap.store import load_store, save_store
from dotswap.variants import create_variant_storage

logger = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def _setup_logging(verbose):
    logging.basicConfig(
        level=_LOG_LEVELS.get(verbose, logging.DEBUG),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version="0.1.0")
@click.option("--state", "state_path", type=click.Path(dir_okay=False), default=None,
              help="State file to use instead of the configured one.")
@click.option("-v", "--verbose", count=True, help="-v for progress, -vv for every copy.")
@click.pass_context
def main(ctx, state_path, verbose):
    """dotswap: keep per-profile variants of your files and swap them in place."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["state_path"] = state_path


def _fail(console, message):
    console.print(f"[bold red]{escape(message)}[/bold red]")
    raise SystemExit(1)


def _audit(entry):
    """Append to the audit log. The state is already saved, so a failure here only warns."""
    try:
        write_log(entry)
    except OSError as e:
        logger.warning("Could not write audit log: %s", e)


def _transition(ctx, event, operation, profile=None, path=None):
    """Load state, run one engine operation, save, log, report.

    operation(engine, store) returns a TransitionReport or None. Errors raised
    before the save leave the state file as it was.
    """
    console = Console()
    entry = {"event": event, "profile": profile or "", "path": path or ""}

    try:
        config = load_config()
    except ValueError as e:
        _fail(console, str(e))

    state_path = Path(ctx.obj["state_path"]) if ctx.obj.get("state_path") else state_file(config)
    try:
        store = load_store(state_path)
        engine = ProfileEngine(create_variant_storage(config))
        report = operation(engine, store)
        save_store(store, state_path)
    except (DotswapError, ValueError) as e:
        _audit({**entry, "result": "error", "error": str(e)})
        _fail(console, str(e))

    failed = sorted(report.failed) if report else []
    orphaned = sorted(report.orphaned) if report else []
    _audit({
        **entry,
        "result": "partial" if failed or orphaned else "ok",
        "failed": failed,
    })

    if report:
        for failed_path in failed:
            console.print(f"  [red]Failed[/red] {escape(failed_path)}: {escape(str(report.failed[failed_path]))}")
        for ref in orphaned:
            console.print(f"  [yellow]Left behind[/yellow] snapshot {escape(ref)}: {escape(str(report.orphaned[ref]))}")
        if failed or orphaned:
            console.print(f"[bold red]{event} finished with {len(failed) + len(orphaned)} failure(s).[/bold red]")
            raise SystemExit(1)
    return report


def _resolve_or_exit(file):
    try:
        return resolve(file)
    except DotswapError as e:
        _fail(Console(), str(e))


@main.command()
@click.argument("file", type=click.Path())
@click.argument("profile", required=False)
@click.pass_context
def add(ctx, file, profile):
    """Manage FILE, and capture its current content for PROFILE if given.

    Examples:
        dotswap add ~/.gitconfig
        dotswap add ~/.gitconfig work
    """
    path = _resolve_or_exit(file)
    outcome = {}

    def operation(engine, store):
        outcome["added"], report = engine.add(store, path, profile)
        return report

    _transition(ctx, "add", operation, profile=profile, path=path)
    console = Console()
    if outcome["added"]:
        console.print(f"[green]Managing[/green] {escape(path)}")
    if profile:
        console.print(f"Captured {escape(path)} for profile [bold]{escape(profile)}[/bold]")
    elif not outcome["added"]:
        console.print(f"[dim]{escape(path)} is already managed.[/dim]")


@main.command()
@click.argument("file", type=click.Path())
@click.option("-p", "--profile", default=None, help="Only drop the variant for this profile.")
@click.pass_context
def remove(ctx, file, profile):
    """Stop managing FILE and restore its original content.

    With --profile, only that profile's variant is dropped.
    """
    path = _resolve_or_exit(file)

    def operation(engine, store):
        if profile:
            return engine.remove_from_profile(store, path, profile)
        return engine.remove_file(store, path)

    _transition(ctx, "remove", operation, profile=profile, path=path)
    if profile:
        Console().print(f"Removed {escape(path)} from profile [bold]{escape(profile)}[/bold]")
    else:
        Console().print(f"[green]Restored[/green] {escape(path)} and stopped managing it")


@main.command()
@click.argument("profile")
@click.option("--exclusive", is_flag=True, help="Deactivate every other profile first.")
@click.pass_context
def activate(ctx, profile, exclusive):
    """Activate PROFILE, installing its variants."""
    report = _transition(
        ctx, "activate",
        lambda engine, store: engine.activate(store, profile, exclusive=exclusive),
        profile=profile,
    )
    Console().print(
        f"[bold green]Activated[/bold green] {escape(profile)} "
        f"[dim]({len(report.installed)} file(s) installed)[/dim]"
    )


@main.command()
@click.argument("profile", required=False)
@click.option("--all", "deactivate_all", is_flag=True, help="Deactivate every profile.")
@click.pass_context
def deactivate(ctx, profile, deactivate_all):
    """Deactivate PROFILE (or --all), restoring originals or the next active variant."""
    console = Console()
    if bool(profile) == deactivate_all:
        _fail(console, "Specify a PROFILE or --all.")

    if deactivate_all:
        _transition(ctx, "deactivate", lambda engine, store: engine.deactivate_all(store))
        console.print("[bold green]All profiles deactivated.[/bold green]")
        return

    _transition(ctx, "deactivate", lambda engine, store: engine.deactivate(store, profile), profile=profile)
    console.print(f"[bold green]Deactivated[/bold green] {escape(profile)}")


@main.command()
@click.pass_context
def refresh(ctx):
    """Re-install the variants of all active profiles over any manual edits."""
    report = _transition(ctx, "refresh", lambda engine, store: engine.activate_all(store))
    Console().print(f"[green]Refreshed[/green] {len(report.installed)} file(s)")


@main.command()
@click.pass_context
def status(ctx):
    """Show profiles and managed files."""
    console = Console()
    try:
        config = load_config()
    except ValueError as e:
        _fail(console, str(e))
    state_path = Path(ctx.obj["state_path"]) if ctx.obj.get("state_path") else state_file(config)
    try:
        store = load_store(state_path)
    except DotswapError as e:
        _fail(console, str(e))

    if not store.files and not store.profiles:
        console.print("[dim]Nothing managed yet. Run 'dotswap add <file>' first.[/dim]")
        return

    profiles = Table(title="Profiles")
    profiles.add_column("Profile", style="bold cyan")
    profiles.add_column("Active")
    profiles.add_column("Files", justify="right")
    for name in sorted(store.profiles):
        profile = store.profiles[name]
        profiles.add_row(
            escape(name),
            "[green]yes[/green]" if profile.active else "[dim]no[/dim]",
            str(len(store.members(name))),
        )
    console.print(profiles)

    files = Table(title="Files")
    files.add_column("Path")
    files.add_column("Profiles", style="dim")
    files.add_column("Live", style="bold")
    for path in sorted(store.files):
        live = store.live_profile(path)
        files.add_row(
            escape(path),
            escape(", ".join(sorted(store.files[path].variants))) or "-",
            escape(live.name) if live else "[dim]original[/dim]",
        )
    console.print(files)


@main.command()
@click.option("-n", "--limit", default=20, help="Number of log entries to show.")
def logs(limit):
    """Show the transition audit log."""
    console = Console()
    entries = read_logs()
    if not entries:
        console.print("[dim]No logs yet.[/dim]")
        return

    table = Table(title="Transition Log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Profile", style="cyan")
    table.add_column("Path", max_width=50)
    table.add_column("Result", style="bold")

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        result = entry.get("result", "")
        result_style = {
            "ok": "[green]ok[/green]",
            "partial": "[yellow]partial[/yellow]",
            "error": "[red]error[/red]",
        }.get(result, escape(result))
        table.add_row(
            ts,
            escape(entry.get("event", "")),
            escape(entry.get("profile", "")),
            escape(entry.get("path", "")),
            result_style,
        )

    console.print(table)


@main.command("config")
@click.argument("key")
@click.argument("value")
def config_cmd(key, value):
    """Save a global setting (state_file, variant_backend, variant_dir).

    Example: dotswap config variant_backend sibling
    """
    try:
        config_file = save_global_config({key: value})
    except ValueError as e:
        _fail(Console(), str(e))
    click.echo(f"Saved {key} to {config_file}")
