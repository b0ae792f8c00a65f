"""CLI: mixpanel config set|show|clear"""

from typing import Optional

import click
from rich.console import Console

console = Console()


def _load_config() -> dict:
    from mixpanel_client.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from mixpanel_client.cli.main import _save_config
    _save_config(cfg)


@click.group("config")
def config_cmd():
    """Saved credentials and host."""


@config_cmd.command("set")
@click.option("--token", default=None, help="Project token")
@click.option("--api-key", default=None, help="API key (import endpoint)")
@click.option("--api-host", default=None, help="API host, e.g. https://api-eu.mixpanel.com")
def config_set(token: Optional[str], api_key: Optional[str], api_host: Optional[str]):
    """Save settings to ~/.mixpanel/config.json."""
    updates = {"token": token, "api_key": api_key, "api_host": api_host}
    updates = {key: value for key, value in updates.items() if value is not None}
    if not updates:
        console.print("[yellow]Nothing to save. Pass --token, --api-key or --api-host.[/yellow]")
        return
    _save_config({**_load_config(), **updates})
    console.print(f"[green]Saved {', '.join(sorted(updates))}.[/green]")


@config_cmd.command("show")
def config_show():
    """Show saved settings."""
    cfg = _load_config()
    if not cfg:
        console.print("[yellow]No saved config.[/yellow]")
        return
    for key in ("token", "api_key", "api_host"):
        value = cfg.get(key)
        if value and key == "api_key":
            value = value[:4] + "..."
        console.print(f"{key}: {value or '[dim]unset[/dim]'}")


@config_cmd.command("clear")
def config_clear():
    """Clear saved settings."""
    _save_config({})
    console.print("[green]Config cleared.[/green]")
