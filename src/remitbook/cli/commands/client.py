"""Client and blacklist commands."""

import click
from remitbook.cli.error_handling import handle_domain_error
from remitbook.domain.client import ClientService
from remitbook.domain.entities import BlacklistKind
from remitbook.domain.errors import DomainError


@click.group()
def client_group():
    """Manage clients."""
    pass


@client_group.command("create")
@click.argument("name", metavar="CLIENT_NAME")
@click.option("--phone", "phones", multiple=True, help="Phone number (repeatable)")
@click.pass_context
def create_client(ctx, name: str, phones: tuple[str, ...]):
    """Create a client and its liability account.

    Examples:
        remitbook client create "محمد احمد علي" --phone 967771234567
    """
    db = ctx.obj["db"]
    service = ClientService(db)

    try:
        client_id = service.create_client(name=name, phones=list(phones))
        client = service.require_client(client_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created client '{name}' (ID: {client_id}, account {client.account_id})")


@client_group.command("list")
@click.pass_context
def list_clients(ctx):
    """List all clients."""
    db = ctx.obj["db"]
    clients = ClientService(db).list_clients()
    if not clients:
        click.echo("No clients found.")
        return

    click.echo("\nClients:")
    click.echo("-" * 80)
    for c in clients:
        flag = " [blacklisted]" if c.blacklisted else ""
        phones = ", ".join(c.phones) or "-"
        click.echo(f"ID: {c.id:4d} | {c.name:30s} | {c.account_id or '-':10s} | {phones}{flag}")


@click.group()
def blacklist_group():
    """Manage the blacklist."""
    pass


@blacklist_group.command("add")
@click.argument("kind", type=click.Choice([k.value for k in BlacklistKind], case_sensitive=False))
@click.argument("value")
@click.option("--reason", help="Why the entry is blacklisted")
@click.pass_context
def add_blacklist_item(ctx, kind: str, value: str, reason: str | None):
    """Blacklist a name or a phone number.

    Examples:
        remitbook blacklist add Name "صالح علي"
        remitbook blacklist add Phone 777123456 --reason "chargeback"
    """
    db = ctx.obj["db"]
    service = ClientService(db)
    try:
        item_id = service.add_blacklist_item(kind=kind.capitalize(), value=value, reason=reason)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Added blacklist item {item_id}")


@blacklist_group.command("list")
@click.pass_context
def list_blacklist(ctx):
    """List blacklist items."""
    db = ctx.obj["db"]
    items = ClientService(db).list_blacklist()
    if not items:
        click.echo("Blacklist is empty.")
        return
    for item in items:
        reason = f" ({item.reason})" if item.reason else ""
        click.echo(f"ID: {item.id:4d} | {item.kind.value:5s} | {item.value}{reason}")


@blacklist_group.command("remove")
@click.argument("item_id", type=int)
@click.pass_context
def remove_blacklist_item(ctx, item_id: int):
    """Remove a blacklist item."""
    db = ctx.obj["db"]
    try:
        ClientService(db).remove_blacklist_item(item_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Removed blacklist item {item_id}")


@blacklist_group.command("scan")
@click.pass_context
def scan_clients(ctx):
    """Flag clients that match the blacklist."""
    db = ctx.obj["db"]
    changed = ClientService(db).scan_clients_with_blacklist()
    click.echo(f"Updated {changed} client(s).")


def register_commands(cli):
    """Register client and blacklist commands with main CLI."""
    cli.add_command(client_group, name="client")
    cli.add_command(blacklist_group, name="blacklist")
