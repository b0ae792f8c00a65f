"""CLI: mixpanel people set|set-once|add|append|union|unset|delete|charge"""

from datetime import datetime
from typing import Optional

import click


def _client(ctx):
    from mixpanel_client.cli.main import _get_client
    return _get_client(ctx)


def _helpers():
    from mixpanel_client.cli import main
    return main


@click.group()
def people():
    """Profile update commands."""


def _profile_command(name: str, method: str, help_text: str) -> click.Command:
    @click.command(name, help=help_text)
    @click.option("-d", "--distinct-id", required=True, help="Distinct id of the profile")
    @click.option("-p", "--prop", "props", multiple=True, help="Property as key=value (repeatable)")
    @click.option("--dry-run", is_flag=True, help="Print the message instead of sending it")
    @click.pass_context
    def command(ctx, distinct_id: str, props: tuple[str, ...], dry_run: bool):
        cli = _helpers()
        client = _client(ctx)
        properties = cli.parse_properties(props)
        if dry_run:
            cli.print_test(getattr(client, f"{method}_test")(properties, distinct_id=distinct_id))
            return
        cli.report(getattr(client, method)(properties, distinct_id=distinct_id), f"people {name}")
    return command


people.add_command(_profile_command("set", "people_set", "Set profile properties."))
people.add_command(_profile_command("set-once", "people_set_once", "Set profile properties that are not set yet."))
people.add_command(_profile_command("add", "people_add", "Increment numeric profile properties."))
people.add_command(_profile_command("append", "people_append", "Append values to list properties."))
people.add_command(_profile_command("union", "people_union", "Union lists into list properties."))


@people.command("unset")
@click.argument("names", nargs=-1, required=True)
@click.option("-d", "--distinct-id", required=True, help="Distinct id of the profile")
@click.option("--dry-run", is_flag=True, help="Print the message instead of sending it")
@click.pass_context
def people_unset(ctx, names: tuple[str, ...], distinct_id: str, dry_run: bool):
    """Remove properties from a profile."""
    cli = _helpers()
    client = _client(ctx)
    if dry_run:
        cli.print_test(client.people_unset_test(list(names), distinct_id=distinct_id))
        return
    cli.report(client.people_unset(list(names), distinct_id=distinct_id), "people unset")


@people.command("delete")
@click.option("-d", "--distinct-id", required=True, help="Distinct id of the profile")
@click.option("--dry-run", is_flag=True, help="Print the message instead of sending it")
@click.pass_context
def people_delete(ctx, distinct_id: str, dry_run: bool):
    """Delete a profile."""
    cli = _helpers()
    client = _client(ctx)
    if dry_run:
        cli.print_test(client.people_delete_test(distinct_id=distinct_id))
        return
    cli.report(client.people_delete(distinct_id=distinct_id), "people delete")


@people.command("charge")
@click.argument("amount", type=float)
@click.option("-d", "--distinct-id", required=True, help="Distinct id of the profile")
@click.option("--time", "when", type=click.DateTime(), default=None, help="Transaction time (UTC)")
@click.option("--dry-run", is_flag=True, help="Print the message instead of sending it")
@click.pass_context
def people_charge(ctx, amount: float, distinct_id: str, when: Optional[datetime], dry_run: bool):
    """Record a revenue transaction on a profile."""
    cli = _helpers()
    client = _client(ctx)
    if dry_run:
        cli.print_test(client.people_track_charge_test(amount, when, distinct_id=distinct_id))
        return
    cli.report(client.people_track_charge(amount, when, distinct_id=distinct_id), "people charge")
