"""CLI: mixpanel send-json"""

import click

from mixpanel_client.errors import ConfigError
from mixpanel_client.models.message import MessageEndpoint


@click.command("send-json")
@click.argument("endpoint", type=click.Choice([e.value for e in MessageEndpoint]))
@click.argument("file", type=click.File("r"))
@click.pass_context
def send_json_cmd(ctx, endpoint: str, file):
    """Post a JSON file (one message or a list) to ENDPOINT as-is."""
    from mixpanel_client.cli.main import _get_client, console, report

    client = _get_client(ctx)
    try:
        sent = client.send_json(MessageEndpoint(endpoint), file.read())
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    report(sent, f"JSON to '{endpoint}'")
