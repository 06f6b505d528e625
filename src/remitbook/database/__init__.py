"""Database layer for remitbook."""

from remitbook.database.base import Database
from remitbook.database.factories import create_database, create_sqlite_database

__all__ = ["Database", "create_database", "create_sqlite_database"]
