"""Financial period commands."""

import click
from remitbook.cli.date_options import resolve_cli_datetime
from remitbook.cli.error_handling import handle_domain_error
from remitbook.domain.errors import DomainError
from remitbook.domain.period import PeriodClosingService


@click.group()
def period_group():
    """Close financial periods."""
    pass


@period_group.command("close")
@click.option("--at", "closed_at", help="Closing instant (defaults to now)")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def close_period(ctx, closed_at: str | None, yes: bool):
    """Snapshot every balance and start a new period.

    Closing cannot be undone, but all entries stay queryable.
    """
    db = ctx.obj["db"]
    service = PeriodClosingService(db)
    at = resolve_cli_datetime(ctx, closed_at, "closing date")

    if not yes and not click.confirm("Close the current financial period?"):
        click.echo("Closing cancelled.")
        return

    try:
        closing = service.close_period(closed_at=at)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Closed period at {closing.closed_at:%Y-%m-%d %H:%M:%S} UTC")
    nonzero = {k: v for k, v in closing.closed_balances.items() if v}
    for account_id, balance in sorted(nonzero.items()):
        click.echo(f"  {account_id:10s} {balance:>14,.2f} USD")
    click.echo(f"{len(closing.closed_balances)} accounts snapshotted, {len(nonzero)} non-zero")


@period_group.command("show")
@click.pass_context
def show_period(ctx):
    """Show the current period boundary."""
    db = ctx.obj["db"]
    start = PeriodClosingService(db).current_period_start()
    if start is None:
        click.echo("No period has been closed yet.")
    else:
        click.echo(f"Current period started {start:%Y-%m-%d %H:%M:%S} UTC")


def register_commands(cli):
    """Register period commands with main CLI."""
    cli.add_command(period_group, name="period")
