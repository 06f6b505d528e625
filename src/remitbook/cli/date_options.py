"""CLI helpers for date options."""

from datetime import datetime

import click

from remitbook.utils.date_parser import parse_datetime


def resolve_cli_datetime(ctx, value: str | None, label: str) -> datetime | None:
    """Parse an optional date option, exiting with an error when it is invalid."""
    if not value:
        return None
    try:
        return parse_datetime(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)
