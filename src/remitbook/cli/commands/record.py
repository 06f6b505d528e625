"""Cash and USDT record commands."""

import click
from remitbook.cli.date_options import resolve_cli_datetime
from remitbook.cli.error_handling import handle_domain_error
from remitbook.domain.entities import RecordKind, RecordStatus
from remitbook.domain.errors import DomainError
from remitbook.domain.reconciliation import ReconciliationService
from remitbook.domain.records import RecordService
from remitbook.utils.amount_parser import parse_amount

KINDS = [k.value for k in RecordKind]
kind_option = click.option(
    "--kind", type=click.Choice(KINDS, case_sensitive=False), default="cash", show_default=True,
    help="Record kind",
)


@click.group()
def record_group():
    """Create records and reconcile them with clients."""
    pass


@record_group.command("create")
@kind_option
@click.option("--account", "account_id", required=True, help="Bank account or wallet the money moved through")
@click.option("--flow", type=click.Choice(["inflow", "outflow"]), required=True, help="Direction")
@click.option("--amount", required=True, help="Amount in --currency")
@click.option("--currency", required=True, help="Currency code")
@click.option("--usd", "amount_usd", help="USD value (defaults to --amount)")
@click.option("--person", help="Sender or recipient")
@click.option("--date", "record_date", help="Date (defaults to now)")
@click.option("--notes", help="Notes")
@click.option("--tx-hash", help="Transaction hash (USDT)")
@click.option("--wallet", "wallet_address", help="Counterparty wallet (USDT)")
@click.pass_context
def create_record(ctx, kind: str, account_id: str, flow: str, amount: str, currency: str,
                  amount_usd: str | None, person: str | None, record_date: str | None,
                  notes: str | None, tx_hash: str | None, wallet_address: str | None):
    """Create a record and park its funds in suspense.

    Examples:
        remitbook record create --account 1000.1 --flow inflow --amount 5300 --currency YER --usd 10
        remitbook record create --kind usdt --account 1100.1 --flow inflow --amount 250 --currency USDT
    """
    db = ctx.obj["db"]
    service = RecordService(db)

    try:
        native = parse_amount(amount)
        usd = parse_amount(amount_usd) if amount_usd is not None else native
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    when = resolve_cli_datetime(ctx, record_date, "date")

    try:
        record_id = service.create_record(
            kind=kind,
            account_id=account_id,
            flow=flow,
            amount=native,
            currency=currency,
            amount_usd=usd,
            person=person,
            date=when,
            notes=notes,
            tx_hash=tx_hash,
            wallet_address=wallet_address,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created {kind} record {record_id}")


@record_group.command("list")
@click.option("--kind", type=click.Choice(KINDS, case_sensitive=False), help="Filter by kind")
@click.option(
    "--status", type=click.Choice([s.value for s in RecordStatus], case_sensitive=False),
    help="Filter by status",
)
@click.option("--client", "client_id", type=int, help="Filter by client ID")
@click.pass_context
def list_records(ctx, kind: str | None, status: str | None, client_id: int | None):
    """List records."""
    db = ctx.obj["db"]
    records = RecordService(db).list_records(kind=kind, status=status, client_id=client_id)
    if not records:
        click.echo("No records found.")
        return

    click.echo(f"\nFound {len(records)} record(s):")
    click.echo("-" * 110)
    for r in records:
        client = f"client {r.client_id}" if r.client_id is not None else "-"
        flag = f" [{r.review_flag}]" if r.review_flag else ""
        click.echo(
            f"#{r.id:<5d} | {r.kind.value:4s} | {r.date:%Y-%m-%d} | {r.flow.value:7s} | "
            f"{r.amount:>12,.2f} {r.currency:4s} | {r.amount_usd:>10,.2f} USD | {r.status.value:9s} | "
            f"{client} | {r.person or ''}{flag}"
        )


@record_group.command("assign")
@click.argument("record_id", type=int)
@click.argument("client_id", type=int)
@kind_option
@click.pass_context
def assign_record(ctx, record_id: int, client_id: int, kind: str):
    """Move a record's funds from suspense to a client."""
    db = ctx.obj["db"]
    try:
        result = ReconciliationService(db).assign_record_to_client(record_id, kind, client_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(
        f"Assigned record {record_id} to client {client_id} (entry {result.transfer_entry_id})"
    )
    click.echo(
        f"  {result.suspense_account_id}: {result.suspense_balance_before:,.2f} -> "
        f"{result.suspense_balance_after:,.2f} USD"
    )
    click.echo(
        f"  {result.client_account_id}: {result.client_balance_before:,.2f} -> "
        f"{result.client_balance_after:,.2f} USD"
    )


@record_group.command("unassign")
@click.argument("record_id", type=int)
@kind_option
@click.pass_context
def unassign_record(ctx, record_id: int, kind: str):
    """Reverse an assignment and return the record to suspense."""
    db = ctx.obj["db"]
    try:
        reversal_id = ReconciliationService(db).unassign_record(record_id, kind)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Unassigned record {record_id} (reversal entry {reversal_id})")


@record_group.command("use")
@click.argument("record_id", type=int)
@kind_option
@click.pass_context
def use_record(ctx, record_id: int, kind: str):
    """Mark a matched record as used."""
    db = ctx.obj["db"]
    try:
        ReconciliationService(db).mark_record_used(record_id, kind)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Record {record_id} marked as used")


@record_group.command("cancel")
@click.argument("record_id", type=int)
@kind_option
@click.pass_context
def cancel_record(ctx, record_id: int, kind: str):
    """Cancel an unmatched record and reverse its suspense posting."""
    db = ctx.obj["db"]
    try:
        ReconciliationService(db).cancel_record(record_id, kind)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Record {record_id} cancelled")


def register_commands(cli):
    """Register record commands with main CLI."""
    cli.add_command(record_group, name="record")
