"""Journal commands."""

import click
from remitbook.cli.date_options import resolve_cli_datetime
from remitbook.cli.error_handling import handle_domain_error
from remitbook.database.models import utc_now
from remitbook.domain.errors import DomainError
from remitbook.domain.journal import LedgerService
from remitbook.utils.amount_parser import parse_amount


def _amount(ctx, value: str | None, label: str):
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def journal_group():
    """Post and inspect journal entries."""
    pass


@journal_group.command("post")
@click.option("--debit", "debit_account_id", required=True, help="Account debited")
@click.option("--credit", "credit_account_id", required=True, help="Account credited")
@click.option("--usd", "amount_usd", required=True, help="USD amount")
@click.option("--debit-amount", help="Debit leg in the debit account's currency (defaults to --usd)")
@click.option("--credit-amount", help="Credit leg in the credit account's currency (defaults to --usd)")
@click.option("--date", "entry_date", help="Entry date (defaults to now)")
@click.option("--description", "-d", default="", help="Description")
@click.pass_context
def post_entry(ctx, debit_account_id: str, credit_account_id: str, amount_usd: str,
               debit_amount: str | None, credit_amount: str | None, entry_date: str | None,
               description: str):
    """Post a journal entry.

    Examples:
        remitbook journal post --debit 1000.1 --credit 7001 --usd 10
        remitbook journal post --debit 1000.1 --credit 7001 --usd 10 --debit-amount 5300
    """
    db = ctx.obj["db"]
    ledger = LedgerService(db)

    usd = _amount(ctx, amount_usd, "USD amount")
    debit = _amount(ctx, debit_amount, "debit amount")
    credit = _amount(ctx, credit_amount, "credit amount")
    when = resolve_cli_datetime(ctx, entry_date, "date") or utc_now()

    try:
        entry_id = ledger.post_entry(
            date=when,
            description=description,
            debit_account_id=debit_account_id,
            credit_account_id=credit_account_id,
            debit_amount=debit if debit is not None else usd,
            credit_amount=credit if credit is not None else usd,
            amount_usd=usd,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Posted entry {entry_id}: Dr {debit_account_id} / Cr {credit_account_id} {usd:,.2f} USD")


@journal_group.command("list")
@click.option("--account", "account_id", help="Only entries touching this account")
@click.option("--since", help="Only entries on or after this date")
@click.pass_context
def list_entries(ctx, account_id: str | None, since: str | None):
    """List journal entries."""
    db = ctx.obj["db"]
    ledger = LedgerService(db)

    start = resolve_cli_datetime(ctx, since, "since date")
    try:
        entries = ledger.list_entries(account_id=account_id, since=start)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not entries:
        click.echo("No entries found.")
        return

    click.echo(f"\nFound {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}:")
    click.echo("-" * 100)
    for entry in entries:
        reversal = f" (reverses #{entry.reversal_of_id})" if entry.reversal_of_id else ""
        click.echo(
            f"#{entry.id:<5d} | {entry.date:%Y-%m-%d %H:%M} | Dr {entry.debit_account_id:8s} "
            f"Cr {entry.credit_account_id:8s} | {entry.amount_usd:>12,.2f} USD | "
            f"{entry.description}{reversal}"
        )


@journal_group.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--description", "-d", help="Description of the reversing entry")
@click.pass_context
def reverse_entry(ctx, entry_id: int, description: str | None):
    """Post the counter-entry of ENTRY_ID."""
    db = ctx.obj["db"]
    ledger = LedgerService(db)

    try:
        reversal_id = ledger.reverse_entry(entry_id, description=description)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Reversed entry {entry_id} with entry {reversal_id}")


@journal_group.command("trial-balance")
@click.pass_context
def trial_balance(ctx):
    """Show USD debit and credit totals per account."""
    db = ctx.obj["db"]
    report = LedgerService(db).trial_balance()

    if not report.lines:
        click.echo("No entries found.")
        return

    click.echo(f"\n{'Account':10s} | {'Name':30s} | {'Debits':>14s} | {'Credits':>14s} | {'Balance':>14s}")
    click.echo("-" * 95)
    for line in report.lines:
        click.echo(
            f"{line.account_id:10s} | {line.account_name:30s} | {line.debits:>14,.2f} | "
            f"{line.credits:>14,.2f} | {line.balance:>14,.2f}"
        )
    click.echo("-" * 95)
    click.echo(f"{'Total':43s} | {report.total_debits:>14,.2f} | {report.total_credits:>14,.2f} |")
    status = "balanced" if report.is_balanced else "NOT BALANCED"
    click.echo(f"{report.entry_count} entries, {status}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
