"""Command-line interface for remitbook."""
