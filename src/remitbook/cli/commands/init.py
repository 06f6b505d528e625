"""Ledger initialization command."""

import click
from remitbook.cli.error_handling import handle_domain_error
from remitbook.domain.account import ChartOfAccountsService
from remitbook.domain.errors import DomainError


@click.command("init")
@click.pass_context
def init_ledger(ctx):
    """Create the client and suspense accounts.

    Safe to run more than once: existing accounts are left alone.

    Examples:
        remitbook init
    """
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    try:
        created = service.ensure_system_accounts()
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if created:
        click.echo(f"Created system accounts: {', '.join(created)}")
    else:
        click.echo("System accounts already exist.")


def register_commands(cli):
    """Register init command with main CLI."""
    cli.add_command(init_ledger)
