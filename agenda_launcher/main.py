"""Agenda Launcher CLI — find and join your next meeting."""

import logging
from typing import Optional

import click
from rich.console import Console

from agenda_launcher.cli.agenda_cmd import list_appointments, next_appointment
from agenda_launcher.config import PROVIDERS, load_config, save_config, store_token
from agenda_launcher.results import SELECTION_POLICIES

console = Console()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log provider calls")
def cli(verbose: bool):
    """Agenda Launcher — your next meeting, one keystroke away."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("set-token")
@click.option("--token", prompt=True, hide_input=True, help="Microsoft Graph access token")
def set_token(token):
    """Store a Microsoft Graph access token in macOS Keychain.

    Examples:

        agenda-launcher set-token
    """
    if store_token(token):
        console.print("[green]✓[/green] Graph token stored in Keychain")
    else:
        console.print("[red]Failed to store token.[/red]")


@cli.command("config")
@click.option("--provider", type=click.Choice(PROVIDERS), default=None)
@click.option("--selection", type=click.Choice(SELECTION_POLICIES), default=None)
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the provider")
def config_cmd(provider: Optional[str], selection: Optional[str], timeout: Optional[float]):
    """Show or update saved settings."""
    config = load_config(apply_env=False)
    changed = False
    for key, value in (("provider", provider), ("selection", selection), ("timeout_seconds", timeout)):
        if value is not None:
            config[key] = value
            changed = True

    if changed:
        save_config(config)
        console.print("[green]✓[/green] Config saved")

    for key, value in config.items():
        console.print(f"[bold]{key}[/bold]: {value}")


cli.add_command(next_appointment)
cli.add_command(list_appointments)


if __name__ == "__main__":
    cli()
