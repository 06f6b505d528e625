"""SMS ingestion commands."""

from decimal import Decimal, InvalidOperation

import click
from remitbook.cli.date_options import resolve_cli_datetime
from remitbook.cli.error_handling import handle_domain_error
from remitbook.domain.errors import DomainError
from remitbook.domain.ingestion import IngestionService, IngestionStatus

rate_option = click.option(
    "--rate", "rates", multiple=True, metavar="CUR=UNITS",
    help="Units of a currency per USD, e.g. YER=530 (repeatable)",
)


def parse_rates(ctx, rates: tuple[str, ...]) -> dict[str, Decimal]:
    """Parse repeated CUR=UNITS options."""
    parsed = {}
    for item in rates:
        code, sep, value = item.partition("=")
        try:
            if not sep or not code.strip():
                raise InvalidOperation
            parsed[code.strip().upper()] = Decimal(value.strip())
        except InvalidOperation:
            click.echo(f"Error: Invalid rate '{item}'. Expected CUR=UNITS, e.g. YER=530", err=True)
            ctx.exit(1)
    return parsed


@click.group()
def sms_group():
    """Ingest bank SMS messages."""
    pass


@sms_group.command("ingest")
@click.argument("account_id")
@click.argument("text")
@rate_option
@click.option("--received-at", help="When the SMS arrived (defaults to now)")
@click.option("--no-assign", is_flag=True, help="Do not assign matched records automatically")
@click.pass_context
def ingest_sms(ctx, account_id: str, text: str, rates: tuple[str, ...], received_at: str | None,
               no_assign: bool):
    """Parse an SMS received on ACCOUNT_ID and record it.

    Examples:
        remitbook sms ingest 1000.1 "استلمت 5000 من محمد" --rate YER=500
    """
    db = ctx.obj["db"]
    service = IngestionService(db, usd_rates=parse_rates(ctx, rates), auto_assign=not no_assign)
    when = resolve_cli_datetime(ctx, received_at, "received date")

    try:
        result = service.ingest_sms(text, account_id, received_at=when)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if result.status == IngestionStatus.DUPLICATE:
        click.echo("Skipped: duplicate SMS within 24 hours.")
        return
    if result.status == IngestionStatus.FAILED:
        click.echo(f"Could not parse SMS (failure {result.failure_id}): {result.reason}")
        return

    parsed = result.parsed
    click.echo(
        f"Recorded cash record {result.record_id}: {parsed.type} {parsed.amount:,.2f} "
        f"{parsed.currency} / {parsed.person}"
    )
    if result.assigned:
        click.echo(f"Assigned to client {result.match.client_id} (rule {result.match.rule})")
    elif result.match is not None:
        click.echo(f"Match: {result.match.status.value}")


@sms_group.command("failures")
@click.option("--all", "show_all", is_flag=True, help="Include resolved failures")
@click.pass_context
def list_failures(ctx, show_all: bool):
    """List messages that could not be parsed."""
    db = ctx.obj["db"]
    failures = IngestionService(db).list_failures(unresolved_only=not show_all)
    if not failures:
        click.echo("No parsing failures.")
        return
    for f in failures:
        resolved = f" -> record {f.resolved_record_id}" if f.resolved_record_id else ""
        click.echo(f"#{f.id:<5d} | {f.failed_at:%Y-%m-%d %H:%M} | {f.account_id} | {f.reason}{resolved}")
        click.echo(f"       {f.raw_sms}")


@sms_group.command("resolve")
@click.argument("failure_id", type=int)
@click.option("--type", "flow_type", type=click.Choice(["credit", "debit"]), required=True)
@click.option("--amount", required=True)
@click.option("--person", required=True)
@click.option("--currency", help="Defaults to the account currency")
@rate_option
@click.pass_context
def resolve_failure(ctx, failure_id: int, flow_type: str, amount: str, person: str,
                    currency: str | None, rates: tuple[str, ...]):
    """Create the record for a failed SMS from manually read fields."""
    db = ctx.obj["db"]
    service = IngestionService(db, usd_rates=parse_rates(ctx, rates))
    try:
        record_id = service.resolve_parsing_failure(
            failure_id,
            {"type": flow_type, "amount": amount, "person": person, "currency": currency},
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Resolved failure {failure_id} with record {record_id}")


@sms_group.command("match")
@click.pass_context
def match_pending(ctx):
    """Re-run client matching over unmatched SMS records."""
    db = ctx.obj["db"]
    try:
        count = IngestionService(db).match_pending_records()
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Assigned {count} record(s).")


@sms_group.command("rule-add")
@click.argument("name")
@click.option("--type", "flow_type", type=click.Choice(["credit", "debit"]), required=True)
@click.option("--amount-after", required=True, help="Text right before the amount")
@click.option("--amount-before", default="", help="Text right after the amount")
@click.option("--person-after", required=True, help="Text right before the person")
@click.option("--person-before", default="", help="Text right after the person (end of message if empty)")
@click.option("--currency", help="Currency of matched messages")
@click.option("--priority", type=int, default=0, show_default=True, help="Lower runs first")
@click.pass_context
def add_rule(ctx, name: str, flow_type: str, amount_after: str, amount_before: str,
             person_after: str, person_before: str, currency: str | None, priority: int):
    """Add a marker rule for a bank's SMS format.

    Examples:
        remitbook sms rule-add kuraimi --type credit --amount-after "مبلغ" --amount-before "ريال" --person-after "من"
    """
    db = ctx.obj["db"]
    try:
        rule_id = IngestionService(db).add_parsing_rule(
            name=name,
            flow_type=flow_type,
            amount_starts_after=amount_after,
            amount_ends_before=amount_before,
            person_starts_after=person_after,
            person_ends_before=person_before,
            currency=currency,
            priority=priority,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Added parsing rule {rule_id} ({name})")


@sms_group.command("rules")
@click.pass_context
def list_rules(ctx):
    """List marker rules in evaluation order."""
    db = ctx.obj["db"]
    rules = IngestionService(db).list_parsing_rules()
    if not rules:
        click.echo("No custom parsing rules. Built-in rules only.")
        return
    for r in rules:
        click.echo(
            f"#{r.id:<4d} | p{r.priority:<3d} | {r.name:20s} | {r.flow_type:6s} | "
            f"amount '{r.amount_starts_after}'..'{r.amount_ends_before}' | "
            f"person '{r.person_starts_after}'..'{r.person_ends_before}'"
        )


def register_commands(cli):
    """Register SMS commands with main CLI."""
    cli.add_command(sms_group, name="sms")
