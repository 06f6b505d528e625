"""Tests for suspense reconciliation."""

from decimal import Decimal

import pytest

from remitbook.domain.entities import RecordStatus
from remitbook.domain.errors import ConflictError, NotFoundError, ValidationError
from remitbook.domain.journal import LedgerService
from remitbook.domain.reconciliation import ReconciliationService


def test_record_creation_parks_funds_in_suspense(ledger, bank_account, unmatched_record):
    """Test that a new inflow record debits the bank and credits suspense."""
    assert unmatched_record.status == RecordStatus.UNMATCHED
    assert unmatched_record.client_id is None
    assert ledger.compute_balance("7001") == Decimal("10")
    assert ledger.compute_balance(bank_account.id) == Decimal("10")

    posting = ledger.require_entry(unmatched_record.posting_entry_id)
    assert posting.debit_account_id == bank_account.id
    assert posting.credit_account_id == "7001"
    assert posting.debit_amount == Decimal("5000")
    assert posting.credit_amount == Decimal("10")


def test_assign_moves_funds_from_suspense_to_client(
    reconciliation_service, ledger, sample_client, unmatched_record, temp_db
):
    """Test assigning a $10 record to a client."""
    result = reconciliation_service.assign_record_to_client(
        unmatched_record.id, "cash", sample_client.id
    )

    assert result.client_account_id == f"6000{sample_client.id}"
    assert ledger.compute_balance("7001") == Decimal("0")
    assert ledger.compute_balance(result.client_account_id) == Decimal("10")

    transfer = ledger.require_entry(result.transfer_entry_id)
    assert transfer.debit_account_id == "7001"
    assert transfer.credit_account_id == result.client_account_id
    assert transfer.amount_usd == Decimal("10")

    record = temp_db.get_record(unmatched_record.id)
    assert record.status == RecordStatus.MATCHED
    assert record.client_id == sample_client.id
    assert record.transfer_entry_id == result.transfer_entry_id
    assert record.suspense_balance_before == Decimal("10")
    assert record.suspense_balance_after == Decimal("0")
    assert record.client_balance_before == Decimal("0")
    assert record.client_balance_after == Decimal("10")


def test_assign_twice_conflicts_without_posting(
    reconciliation_service, ledger, sample_client, unmatched_record
):
    """Test that a matched record cannot be assigned again."""
    reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)
    count = ledger.count_entries()

    with pytest.raises(ConflictError, match="already matched"):
        reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)

    assert ledger.count_entries() == count
    assert ledger.compute_balance(f"6000{sample_client.id}") == Decimal("10")


def test_assign_missing_record(reconciliation_service, sample_client):
    """Test assigning a record that does not exist."""
    with pytest.raises(NotFoundError, match="Cash record 99 not found"):
        reconciliation_service.assign_record_to_client(99, "cash", sample_client.id)


def test_assign_wrong_kind(reconciliation_service, sample_client, unmatched_record):
    """Test that a cash record is not found under the usdt kind."""
    with pytest.raises(NotFoundError, match="Usdt record"):
        reconciliation_service.assign_record_to_client(unmatched_record.id, "usdt", sample_client.id)


def test_assign_invalid_kind(reconciliation_service, sample_client, unmatched_record):
    """Test that an unknown record kind is rejected."""
    with pytest.raises(ValidationError, match="Invalid record kind"):
        reconciliation_service.assign_record_to_client(unmatched_record.id, "gold", sample_client.id)


def test_assign_missing_client(reconciliation_service, ledger, unmatched_record):
    """Test assigning to a client that does not exist."""
    count = ledger.count_entries()

    with pytest.raises(NotFoundError, match="Client 404 not found"):
        reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", 404)

    assert ledger.count_entries() == count


def test_unassign_restores_suspense(
    reconciliation_service, ledger, sample_client, unmatched_record, temp_db
):
    """Test that unassigning reverses the transfer and resets the record."""
    result = reconciliation_service.assign_record_to_client(
        unmatched_record.id, "cash", sample_client.id
    )

    reversal_id = reconciliation_service.unassign_record(unmatched_record.id, "cash")

    reversal = ledger.require_entry(reversal_id)
    assert reversal.reversal_of_id == result.transfer_entry_id
    assert ledger.compute_balance("7001") == Decimal("10")
    assert ledger.compute_balance(result.client_account_id) == Decimal("0")

    record = temp_db.get_record(unmatched_record.id)
    assert record.status == RecordStatus.UNMATCHED
    assert record.client_id is None
    assert record.transfer_entry_id is None
    assert record.suspense_balance_before is None


def test_reassign_after_unassign(reconciliation_service, client_service, ledger, sample_client, unmatched_record):
    """Test that an unassigned record can go to another client."""
    other_id = client_service.create_client("محمد سعيد")
    reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)
    reconciliation_service.unassign_record(unmatched_record.id, "cash")

    result = reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", other_id)

    assert result.client_id == other_id
    assert ledger.compute_balance(f"6000{other_id}") == Decimal("10")
    assert ledger.compute_balance(f"6000{sample_client.id}") == Decimal("0")
    assert ledger.trial_balance().is_balanced


def test_unassign_unmatched_record(reconciliation_service, unmatched_record):
    """Test that a record without a transfer cannot be unassigned."""
    with pytest.raises(NotFoundError, match="no transfer entry"):
        reconciliation_service.unassign_record(unmatched_record.id, "cash")


def test_record_entries_cannot_be_reversed_directly(
    reconciliation_service, ledger, sample_client, unmatched_record, temp_db
):
    """Test that a record's own entries are only reversed through the record."""
    result = reconciliation_service.assign_record_to_client(
        unmatched_record.id, "cash", sample_client.id
    )

    for entry_id in (unmatched_record.posting_entry_id, result.transfer_entry_id):
        with pytest.raises(ConflictError, match="unassign or cancel the record instead"):
            ledger.reverse_entry(entry_id)

    assert ledger.compute_balance("7001") == Decimal("0")
    assert ledger.compute_balance(result.client_account_id) == Decimal("10")
    assert temp_db.get_record(unmatched_record.id).status == RecordStatus.MATCHED

    reversal_id = reconciliation_service.unassign_record(unmatched_record.id, "cash")
    with pytest.raises(ConflictError, match="post a new entry instead"):
        ledger.reverse_entry(reversal_id)
    assert ledger.compute_balance("7001") == Decimal("10")


def test_used_record_cannot_be_unassigned(
    reconciliation_service, ledger, sample_client, unmatched_record, temp_db
):
    """Test that Used is final for unassignment."""
    reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)
    reconciliation_service.mark_record_used(unmatched_record.id, "cash")
    count = ledger.count_entries()

    with pytest.raises(ConflictError, match="Used"):
        reconciliation_service.unassign_record(unmatched_record.id, "cash")

    assert ledger.count_entries() == count
    assert temp_db.get_record(unmatched_record.id).status == RecordStatus.USED


def test_mark_used_requires_matched(reconciliation_service, unmatched_record):
    """Test that only matched records can be used."""
    with pytest.raises(ConflictError, match="expected Matched"):
        reconciliation_service.mark_record_used(unmatched_record.id, "cash")


def test_cancel_reverses_suspense_posting(reconciliation_service, ledger, bank_account, unmatched_record, temp_db):
    """Test that cancelling takes the funds back out of suspense."""
    reversal_id = reconciliation_service.cancel_record(unmatched_record.id, "cash")

    assert ledger.require_entry(reversal_id).reversal_of_id == unmatched_record.posting_entry_id
    assert ledger.compute_balance("7001") == Decimal("0")
    assert ledger.compute_balance(bank_account.id) == Decimal("0")
    assert temp_db.get_record(unmatched_record.id).status == RecordStatus.CANCELLED


def test_cancel_matched_record_conflicts(reconciliation_service, sample_client, unmatched_record):
    """Test that a matched record must be unassigned before cancelling."""
    reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)

    with pytest.raises(ConflictError, match="unassign it first"):
        reconciliation_service.cancel_record(unmatched_record.id, "cash")


def test_cancelled_record_cannot_be_assigned(reconciliation_service, sample_client, unmatched_record):
    """Test that a cancelled record stays out of reconciliation."""
    reconciliation_service.cancel_record(unmatched_record.id, "cash")

    with pytest.raises(ConflictError, match="Cancelled"):
        reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)


def test_assign_outflow_record(reconciliation_service, record_service, ledger, sample_client, chart_service):
    """Test that an outflow moves funds from the client to suspense."""
    wallet = chart_service.create_account("Wallets", "Assets", account_id="1100", is_group=True)
    wallet_id = chart_service.create_account("Tron wallet", "Assets", parent_id=wallet, currency="USDT")
    record_id = record_service.create_record(
        kind="usdt",
        account_id=wallet_id,
        flow="outflow",
        amount=Decimal("25"),
        currency="USDT",
        amount_usd=Decimal("25"),
        person="احمد علي صالح",
        tx_hash="abc123",
    )
    assert ledger.compute_balance("7002") == Decimal("-25")

    result = reconciliation_service.assign_record_to_client(record_id, "usdt", sample_client.id)

    transfer = ledger.require_entry(result.transfer_entry_id)
    assert transfer.debit_account_id == result.client_account_id
    assert transfer.credit_account_id == "7002"
    assert ledger.compute_balance("7002") == Decimal("0")
    assert ledger.compute_balance(result.client_account_id) == Decimal("-25")
    assert result.client_balance_after == Decimal("-25")
    assert result.suspense_balance_before == Decimal("-25")


def test_stale_concurrent_assignment_conflicts(
    temp_db, second_db, reconciliation_service, ledger, sample_client, client_service, unmatched_record
):
    """Test that a second handle working from a stale read cannot double-post."""
    other_id = client_service.create_client("محمد سعيد")
    other = ReconciliationService(second_db, ledger=LedgerService(second_db))
    assert second_db.get_record(unmatched_record.id).status == RecordStatus.UNMATCHED

    reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)
    count = ledger.count_entries()

    with pytest.raises(ConflictError):
        other.assign_record_to_client(unmatched_record.id, "cash", other_id)

    assert ledger.count_entries() == count
    assert ledger.compute_balance("7001") == Decimal("0")
    assert ledger.compute_balance(f"6000{other_id}") == Decimal("0")
    assert temp_db.get_record(unmatched_record.id).client_id == sample_client.id


def test_notifier_receives_committed_events(reconciliation_service, notifier, sample_client, unmatched_record):
    """Test the notifier sees every state change."""
    reconciliation_service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)
    reconciliation_service.unassign_record(unmatched_record.id, "cash")
    reconciliation_service.cancel_record(unmatched_record.id, "cash")

    assert notifier.events == [
        ("matched", unmatched_record.id),
        ("unassigned", unmatched_record.id),
        ("cancelled", unmatched_record.id),
    ]


def test_failing_notifier_does_not_undo_assignment(
    temp_db, chart_service, ledger, sample_client, unmatched_record
):
    """Test that a notifier error is logged and the assignment stays committed."""

    class BrokenNotifier:
        def record_matched(self, result):
            raise RuntimeError("socket closed")

    service = ReconciliationService(temp_db, ledger=ledger, notifier=BrokenNotifier())

    result = service.assign_record_to_client(unmatched_record.id, "cash", sample_client.id)

    assert temp_db.get_record(unmatched_record.id).status == RecordStatus.MATCHED
    assert ledger.compute_balance(result.client_account_id) == Decimal("10")
