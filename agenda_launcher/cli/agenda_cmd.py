"""CLI commands for looking up the next appointment."""

from __future__ import annotations

import logging
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from agenda_launcher.config import PROVIDERS, load_config
from agenda_launcher.plugin import AgendaPlugin
from agenda_launcher.results import SELECTION_POLICIES, Query, format_start
from agenda_launcher.sources.base import AgendaError

console = Console()
logger = logging.getLogger(__name__)


def _plugin_for(provider: Optional[str], selection: Optional[str] = None) -> AgendaPlugin:
    config = load_config()
    if provider:
        config["provider"] = provider
    if selection:
        config["selection"] = selection
    try:
        return AgendaPlugin(config=config)
    except (TypeError, ValueError) as exc:
        raise click.UsageError(f"Invalid configuration: {exc}") from exc


@click.command("next")
@click.option("--provider", type=click.Choice(PROVIDERS), default=None, help="Calendar provider (default: from config)")
@click.option("--selection", type=click.Choice(SELECTION_POLICIES), default=None,
              help="first = provider order, earliest = soonest start")
@click.option("--open", "open_link", is_flag=True, help="Open the meeting link")
def next_appointment(provider: Optional[str], selection: Optional[str], open_link: bool):
    """Show the next appointment in the coming day.

    \b
    Examples:
        agenda-launcher next
        agenda-launcher next --provider graph --open
    """
    plugin = _plugin_for(provider, selection)
    with console.status("[bold green]Reading calendar..."):
        results = plugin.query(Query())

    if not results:
        console.print("[dim]No upcoming appointments.[/dim]")
        return

    result = results[0]
    console.print(f"[bold]{result.title}[/bold]  {result.subtitle}")
    console.print(f"[dim]{result.tooltip.text}[/dim]")
    link = result.context_data.online_meeting_link
    if link:
        console.print(f"[cyan]{link}[/cyan]")

    if open_link:
        if link:
            console.print("[green]✓[/green] Opening meeting link…")
        else:
            console.print("[yellow]No meeting link for this appointment.[/yellow]")
        result.action()


@click.command("list")
@click.option("--provider", type=click.Choice(PROVIDERS), default=None, help="Calendar provider (default: from config)")
@click.option("--hours", type=float, default=None, help="Lookahead window in hours")
def list_appointments(provider: Optional[str], hours: Optional[float]):
    """List every appointment in the lookahead window, in provider order."""
    plugin = _plugin_for(provider)
    if hours is not None:
        plugin.update_settings({"lookahead_hours": hours})

    try:
        with console.status("[bold green]Reading calendar..."):
            appointments = plugin.lookahead.fetch_upcoming()
    except AgendaError as exc:
        console.print(f"[red]Calendar lookup failed:[/red] {exc}")
        return

    if not appointments:
        console.print("[dim]No upcoming appointments.[/dim]")
        return

    table = Table(title=f"Next {plugin.lookahead.duration} ({plugin.provider.name})")
    table.add_column("Start")
    table.add_column("Subject")
    table.add_column("Join link", overflow="fold")
    for appt in appointments:
        table.add_row(format_start(appt.start_time), appt.subject, appt.online_meeting_link or "—")
    console.print(table)
