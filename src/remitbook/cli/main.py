"""Main CLI entry point."""

import logging

import click
from remitbook.database.factories import DB_PATH_ENVVAR, create_sqlite_database

from remitbook.cli.commands import (
    account,
    client,
    init,
    journal,
    period,
    record,
    sms,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENVVAR} environment variable)",
    envvar=DB_PATH_ENVVAR,
)
@click.option("--verbose", "-v", is_flag=True, help="Log postings, assignments and closings")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Remitbook - remittance ledger and reconciliation.

    Keeps a double-entry journal for cash and USDT movements, parks
    unattributed funds in suspense accounts and moves them to clients as
    bank messages and records are matched.
    """
    ctx.ensure_object(dict)

    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
init.register_commands(cli)
account.register_commands(cli)
journal.register_commands(cli)
client.register_commands(cli)
record.register_commands(cli)
sms.register_commands(cli)
period.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
