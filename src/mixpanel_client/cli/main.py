"""
Mixpanel CLI — `mixpanel` command.

Commands:
  mixpanel config set|show|clear     Saved token / API key / host
  mixpanel track <event>             Track an event
  mixpanel import <event>            Import a historical event (API key)
  mixpanel alias <alias>             Create an alias
  mixpanel people <cmd>              Profile updates
  mixpanel send-json <endpoint> <f>  Post a raw JSON file
"""

import json
from pathlib import Path
from typing import Any, Optional

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install mixpanel-client[cli]")

from mixpanel_client.client import MixpanelClient
from mixpanel_client.config import MixpanelConfig
from mixpanel_client.models.result import MessageTest

console = Console()
CONFIG_FILE = Path.home() / ".mixpanel" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client(ctx: click.Context) -> MixpanelClient:
    cfg = _load_config()
    opts = ctx.find_root().obj or {}
    token = opts.get("token") or cfg.get("token")
    if not token:
        console.print("[red]No project token. Run `mixpanel config set --token ...` or pass --token.[/red]")
        raise SystemExit(1)
    return MixpanelClient(
        token=token,
        api_key=opts.get("api_key") or cfg.get("api_key"),
        config=MixpanelConfig(api_host=cfg.get("api_host")),
    )


def parse_properties(pairs: tuple[str, ...]) -> dict[str, Any]:
    """key=value pairs; values are read as JSON when they parse, else kept as text."""
    properties: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--prop")
        try:
            properties[key] = json.loads(raw)
        except json.JSONDecodeError:
            properties[key] = raw
    return properties


def print_test(test: MessageTest) -> None:
    if test.error is not None:
        console.print(f"[red]Message build failed: {test.error}[/red]")
        raise SystemExit(1)
    console.print_json(test.json_text)
    console.print(f"[dim]base64: {test.base64}[/dim]")


def report(sent: bool, what: str) -> None:
    if sent:
        console.print(f"[green]{what} sent.[/green]")
    else:
        console.print(f"[red]{what} failed.[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option("0.1.0")
@click.option("--token", default=None, help="Project token (overrides saved config)")
@click.option("--api-key", default=None, help="API key for the import endpoint")
@click.pass_context
def main(ctx: click.Context, token: Optional[str], api_key: Optional[str]):
    """Mixpanel CLI — send events and profile updates."""
    ctx.obj = {"token": token, "api_key": api_key}


# Register subcommands from separate modules
from mixpanel_client.cli.config import config_cmd
from mixpanel_client.cli.events import track_cmd, import_cmd, alias_cmd
from mixpanel_client.cli.people import people
from mixpanel_client.cli.raw import send_json_cmd

main.add_command(config_cmd)
main.add_command(track_cmd)
main.add_command(import_cmd)
main.add_command(alias_cmd)
main.add_command(people)
main.add_command(send_json_cmd)


if __name__ == "__main__":
    main()
