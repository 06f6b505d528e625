"""Shared pytest fixtures for remitbook tests."""

import tempfile
import os
from decimal import Decimal
import pytest

from remitbook.database.factories import create_sqlite_database
from remitbook.domain.account import ChartOfAccountsService
from remitbook.domain.client import ClientService
from remitbook.domain.ingestion import IngestionService
from remitbook.domain.journal import LedgerService
from remitbook.domain.period import PeriodClosingService
from remitbook.domain.reconciliation import ReconciliationService
from remitbook.domain.records import RecordService


class RecordingNotifier:
    """Notifier that remembers every event it receives."""

    def __init__(self):
        self.events = []

    def record_matched(self, result):
        self.events.append(("matched", result.record_id))

    def record_unassigned(self, record_id, reversal_entry_id):
        self.events.append(("unassigned", record_id))

    def record_closed(self, record_id, status):
        self.events.append((status.value.lower(), record_id))


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def second_db(temp_db):
    """A second, independent handle on the same database file."""
    db = create_sqlite_database(database_path=temp_db.database_path)
    db.connect()
    yield db
    db.disconnect()


@pytest.fixture
def chart_service(temp_db):
    """Create a ChartOfAccountsService with the system accounts in place."""
    service = ChartOfAccountsService(temp_db)
    service.ensure_system_accounts()
    return service


@pytest.fixture
def ledger(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def client_service(temp_db, chart_service):
    """Create a ClientService with a temporary database."""
    return ClientService(temp_db)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def reconciliation_service(temp_db, chart_service, ledger, notifier):
    """Create a ReconciliationService with a recording notifier."""
    return ReconciliationService(temp_db, ledger=ledger, notifier=notifier)


@pytest.fixture
def record_service(temp_db, chart_service, ledger):
    """Create a RecordService with a temporary database."""
    return RecordService(temp_db, ledger=ledger)


@pytest.fixture
def period_service(temp_db, chart_service, ledger):
    """Create a PeriodClosingService with a temporary database."""
    return PeriodClosingService(temp_db, ledger=ledger)


@pytest.fixture
def ingestion_service(temp_db, chart_service):
    """Create an IngestionService with a YER rate of 500 per USD."""
    return IngestionService(temp_db, usd_rates={"YER": Decimal("500"), "SAR": Decimal("3.75")})


@pytest.fixture
def bank_account(chart_service):
    """A YER bank account under an Assets group."""
    chart_service.create_account("Banks", "Assets", account_id="1000", is_group=True)
    account_id = chart_service.create_account("Kuraimi YER", "Assets", parent_id="1000", currency="YER")
    return chart_service.get_account(account_id)


@pytest.fixture
def sample_client(client_service):
    """A client with a phone number and a liability account."""
    client_id = client_service.create_client("احمد علي صالح", phones=["+967 771 234 567"])
    return client_service.get_client(client_id)


@pytest.fixture
def unmatched_record(record_service, bank_account):
    """A $10 inflow cash record sitting in suspense."""
    record_id = record_service.create_record(
        kind="cash",
        account_id=bank_account.id,
        flow="inflow",
        amount=Decimal("5000"),
        currency="YER",
        amount_usd=Decimal("10"),
        person="احمد علي صالح",
    )
    return record_service.get_record(record_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
