"""CLI: mixpanel track|import|alias"""

from typing import Optional

import click

from mixpanel_client.errors import ConfigError


def _client(ctx):
    from mixpanel_client.cli.main import _get_client
    return _get_client(ctx)


def _helpers():
    from mixpanel_client.cli import main
    return main


@click.command("track")
@click.argument("event")
@click.option("-d", "--distinct-id", default=None, help="Distinct id of the user")
@click.option("-p", "--prop", "props", multiple=True, help="Property as key=value (repeatable)")
@click.option("--dry-run", is_flag=True, help="Print the message instead of sending it")
@click.pass_context
def track_cmd(ctx, event: str, distinct_id: Optional[str], props: tuple[str, ...], dry_run: bool):
    """Track an event."""
    cli = _helpers()
    client = _client(ctx)
    properties = cli.parse_properties(props)
    if dry_run:
        cli.print_test(client.track_test(event, properties, distinct_id=distinct_id))
        return
    cli.report(client.track(event, properties, distinct_id=distinct_id), f"Event '{event}'")


@click.command("import")
@click.argument("event")
@click.option("-d", "--distinct-id", default=None, help="Distinct id of the user")
@click.option("-p", "--prop", "props", multiple=True, help="Property as key=value; set time=<epoch> for the event time")
@click.pass_context
def import_cmd(ctx, event: str, distinct_id: Optional[str], props: tuple[str, ...]):
    """Import a historical event (requires an API key)."""
    cli = _helpers()
    client = _client(ctx)
    properties = cli.parse_properties(props)
    try:
        sent = client.import_event(event, properties, distinct_id=distinct_id)
    except ConfigError as e:
        cli.console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    cli.report(sent, f"Import of '{event}'")


@click.command("alias")
@click.argument("alias")
@click.option("-d", "--distinct-id", required=True, help="Existing distinct id")
@click.option("--dry-run", is_flag=True, help="Print the message instead of sending it")
@click.pass_context
def alias_cmd(ctx, alias: str, distinct_id: str, dry_run: bool):
    """Alias a new id to an existing distinct id."""
    cli = _helpers()
    client = _client(ctx)
    if dry_run:
        cli.print_test(client.alias_test(alias, distinct_id=distinct_id))
        return
    cli.report(client.alias(alias, distinct_id=distinct_id), f"Alias '{alias}'")
