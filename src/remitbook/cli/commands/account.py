"""Chart-of-accounts commands."""

import click
from remitbook.cli.date_options import resolve_cli_datetime
from remitbook.cli.error_handling import handle_domain_error
from remitbook.domain.account import ChartOfAccountsService
from remitbook.domain.entities import AccountType
from remitbook.domain.errors import DomainError
from remitbook.domain.journal import LedgerService
from remitbook.domain.period import PeriodClosingService

ACCOUNT_TYPES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type", "account_type", required=True,
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False), help="Account type",
)
@click.option("--parent", "parent_id", help="Parent group account ID")
@click.option("--currency", help="Currency code, e.g. YER or USD")
@click.option("--group", "is_group", is_flag=True, help="Create a group account (never posted to)")
@click.option("--code", "account_id", help="Explicit account code (generated under --parent when omitted)")
@click.pass_context
def create_account(ctx, name: str, account_type: str, parent_id: str | None, currency: str | None,
                   is_group: bool, account_id: str | None):
    """Create a new account.

    Examples:
        remitbook account create "Banks" --type Assets --code 1000 --group
        remitbook account create "Kuraimi YER" --type Assets --parent 1000 --currency YER
    """
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    try:
        created = service.create_account(
            name=name,
            account_type=account_type,
            parent_id=parent_id,
            currency=currency,
            is_group=is_group,
            account_id=account_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created account '{name}' (ID: {created})")


@account_group.command("list")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES, case_sensitive=False), help="Filter by type")
@click.option("--parent", "parent_id", help="Only children of this group")
@click.option("--leaves", is_flag=True, help="Only accounts that can be posted to")
@click.pass_context
def list_accounts(ctx, account_type: str | None, parent_id: str | None, leaves: bool):
    """List accounts."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    accounts = service.list_accounts(
        is_group=False if leaves else None, account_type=account_type, parent_id=parent_id
    )
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        kind = "group" if acc.is_group else (acc.currency or "-")
        parent = f" (in {acc.parent_id})" if acc.parent_id else ""
        click.echo(f"{acc.id:10s} | {acc.name:30s} | {acc.type.value:11s} | {kind}{parent}")


@account_group.command("balance")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.option("--since", help="Only entries on or after this date")
@click.option("--until", help="Only entries before this date")
@click.option("--period", "current_period", is_flag=True, help="Only entries since the last period close")
@click.pass_context
def account_balance(ctx, account_id: str, since: str | None, until: str | None, current_period: bool):
    """Show an account balance in USD.

    Without options the balance covers the full history.

    Examples:
        remitbook account balance 7001
        remitbook account balance 60001 --period
    """
    db = ctx.obj["db"]
    ledger = LedgerService(db)

    start = resolve_cli_datetime(ctx, since, "since date")
    end = resolve_cli_datetime(ctx, until, "until date")
    if current_period:
        if start is not None:
            click.echo("Error: --period cannot be combined with --since.", err=True)
            ctx.exit(1)
        start = PeriodClosingService(db, ledger).current_period_start()

    try:
        account = ChartOfAccountsService(db).require_account(account_id)
        balance = ledger.compute_balance(account_id, since=start, until=end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"{account.id} {account.name}: {balance:,.2f} USD")
    if account.closed_balance is not None and current_period:
        click.echo(f"Closed balance: {account.closed_balance:,.2f} USD "
                   f"(at {account.last_closing_date:%Y-%m-%d %H:%M})")


@account_group.command("statement")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.option("--since", help="Only entries on or after this date")
@click.pass_context
def account_statement(ctx, account_id: str, since: str | None):
    """Show every entry behind an account balance."""
    db = ctx.obj["db"]
    ledger = LedgerService(db)

    start = resolve_cli_datetime(ctx, since, "since date")
    try:
        statement = ledger.get_account_statement(account_id, since=start)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not statement.lines:
        click.echo("No entries found.")
        return

    click.echo(f"\nStatement for {account_id}:")
    click.echo("-" * 100)
    for line in statement.lines:
        side = "Dr" if line.direction.value == "debit" else "Cr"
        click.echo(
            f"{line.date:%Y-%m-%d} | #{line.entry_id:<5d} | {side} {line.amount_usd:>12,.2f} | "
            f"{line.balance_after:>12,.2f} | {line.counter_account_id:8s} | {line.description}"
        )
    click.echo("-" * 100)
    click.echo(f"Debits: {statement.total_debits:,.2f}  Credits: {statement.total_credits:,.2f}  "
               f"Balance: {statement.balance:,.2f} USD")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
