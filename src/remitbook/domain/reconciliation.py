"""Suspense reconciliation.

A record is created Unmatched with its money parked in a suspense account.
Assigning it to a client moves the money from suspense to the client's
liability account with one transfer entry. The record update is a
compare-and-set in the same store transaction as the entry insert, so two
concurrent assignments of one record can never both post.

    Unmatched -> Matched -> Used
    Unmatched -> Cancelled
    Matched -> Unmatched (unassign, posts a reversal)
"""

import logging
from decimal import Decimal
from typing import Optional, Protocol

from remitbook.database.base import Database
from remitbook.database.models import utc_now
from remitbook.domain.account import UNMATCHED_CASH_ID, UNMATCHED_USDT_ID
from remitbook.domain.client import ClientAccountResolver
from remitbook.domain.entities import (
    Account,
    AssignmentResult,
    NormalSide,
    Record,
    RecordFlow,
    RecordKind,
    RecordStatus,
)
from remitbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    client_not_found,
    entry_not_found,
    record_already_matched,
    record_not_found,
    record_wrong_status,
)
from remitbook.domain.journal import LedgerService

logger = logging.getLogger(__name__)


def parse_record_kind(value) -> RecordKind:
    """Parse a record kind, raising ValidationError for anything else."""
    try:
        return value if isinstance(value, RecordKind) else RecordKind(str(value).strip().lower())
    except ValueError:
        kinds = ", ".join(k.value for k in RecordKind)
        raise ValidationError(f"Invalid record kind '{value}'. Must be one of: {kinds}")


class SuspenseAccountResolver:
    """Maps a record kind to the suspense account holding its funds."""

    def __init__(self, accounts: Optional[dict[RecordKind, str]] = None):
        self.accounts = accounts or {
            RecordKind.CASH: UNMATCHED_CASH_ID,
            RecordKind.USDT: UNMATCHED_USDT_ID,
        }

    def resolve(self, kind: RecordKind) -> str:
        return self.accounts[kind]


class Notifier(Protocol):
    """Receives reconciliation events after they are committed."""

    def record_matched(self, result: AssignmentResult) -> None: ...

    def record_unassigned(self, record_id: int, reversal_entry_id: int) -> None: ...

    def record_closed(self, record_id: int, status: RecordStatus) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the log."""

    def record_matched(self, result: AssignmentResult) -> None:
        logger.info(
            "Record %s matched to client %s (entry %s)",
            result.record_id,
            result.client_id,
            result.transfer_entry_id,
        )

    def record_unassigned(self, record_id: int, reversal_entry_id: int) -> None:
        logger.info("Record %s unassigned (reversal entry %s)", record_id, reversal_entry_id)

    def record_closed(self, record_id: int, status: RecordStatus) -> None:
        logger.info("Record %s is now %s", record_id, status.value)


def _after(account: Account, before: Decimal, side: NormalSide, amount: Decimal) -> Decimal:
    return before + amount if side == account.normal_side else before - amount


class ReconciliationService:
    """Service for moving records out of suspense."""

    def __init__(
        self,
        db: Database,
        ledger: Optional[LedgerService] = None,
        suspense_resolver: Optional[SuspenseAccountResolver] = None,
        client_accounts: Optional[ClientAccountResolver] = None,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            ledger: Ledger used for validation and balances
            suspense_resolver: Maps record kinds to suspense accounts
            client_accounts: Resolves client liability accounts
            notifier: Told about committed state changes
        """
        self.db = db
        self.ledger = ledger or LedgerService(db)
        self.suspense_resolver = suspense_resolver or SuspenseAccountResolver()
        self.client_accounts = client_accounts or ClientAccountResolver(db)
        self.notifier: Notifier = notifier or LoggingNotifier()

    def _require_record(self, record_id: int, kind: RecordKind) -> Record:
        record = self.db.get_record(record_id)
        if record is None or record.kind != kind:
            raise NotFoundError(record_not_found(record_id, kind.value))
        return record

    def _notify(self, event: str, *args) -> None:
        try:
            getattr(self.notifier, event)(*args)
        except Exception:
            # Ledger state is already committed
            logger.exception("Notifier failed on %s", event)

    def assign_record_to_client(self, record_id: int, record_kind, client_id: int) -> AssignmentResult:
        """Move a record's funds from suspense to a client's account.

        Args:
            record_id: Record ID
            record_kind: "cash" or "usdt"
            client_id: Client receiving the funds

        Returns:
            AssignmentResult with the transfer entry and balance snapshots

        Raises:
            NotFoundError: If the record or client does not exist
            ConflictError: If the record is already matched or not Unmatched,
                including when a concurrent assignment won
            StoreError: If the write failed and was rolled back
        """
        kind = parse_record_kind(record_kind)
        record = self._require_record(record_id, kind)
        if record.client_id is not None or record.transfer_entry_id is not None:
            logger.warning("Rejected assignment of record %s: already matched", record_id)
            raise ConflictError(record_already_matched(record_id))
        if record.status != RecordStatus.UNMATCHED:
            raise ConflictError(
                record_wrong_status(record_id, record.status.value, RecordStatus.UNMATCHED.value)
            )

        client = self.db.get_client(client_id)
        if client is None:
            raise NotFoundError(client_not_found(client_id))

        suspense_id = self.suspense_resolver.resolve(kind)
        client_account_id = self.client_accounts.resolve(client)
        suspense = self.db.get_account(suspense_id)
        if suspense is None:
            raise NotFoundError(account_not_found(suspense_id))
        client_account = self.db.get_account(client_account_id)

        # Inflow parked a credit on suspense, outflow a debit
        if record.flow == RecordFlow.INFLOW:
            debit_id, credit_id = suspense_id, client_account_id
        else:
            debit_id, credit_id = client_account_id, suspense_id

        amount = record.amount_usd
        transfer = self.ledger.build_entry(
            date=utc_now(),
            description=f"Assign {kind.value} record {record_id} to client {client_id}",
            debit_account_id=debit_id,
            credit_account_id=credit_id,
            debit_amount=amount,
            credit_amount=amount,
            amount_usd=amount,
        )

        suspense_before = self.ledger.compute_balance(suspense_id)
        client_before = self.ledger.compute_balance(client_account_id)
        suspense_side = NormalSide.DEBIT if debit_id == suspense_id else NormalSide.CREDIT
        client_side = NormalSide.DEBIT if debit_id == client_account_id else NormalSide.CREDIT
        suspense_after = _after(suspense, suspense_before, suspense_side, amount)
        client_after = _after(client_account, client_before, client_side, amount)

        try:
            transfer_entry_id = self.db.assign_record(
                record_id=record_id,
                client_id=client_id,
                transfer=transfer,
                suspense_balance_before=suspense_before,
                suspense_balance_after=suspense_after,
                client_balance_before=client_before,
                client_balance_after=client_after,
            )
        except ConflictError:
            logger.warning("Assignment of record %s lost a concurrent update", record_id)
            raise

        result = AssignmentResult(
            record_id=record_id,
            client_id=client_id,
            transfer_entry_id=transfer_entry_id,
            suspense_account_id=suspense_id,
            client_account_id=client_account_id,
            suspense_balance_before=suspense_before,
            suspense_balance_after=suspense_after,
            client_balance_before=client_before,
            client_balance_after=client_after,
        )
        logger.info(
            "Assigned record %s to client %s: Dr %s / Cr %s USD %s (entry %s)",
            record_id,
            client_id,
            debit_id,
            credit_id,
            amount,
            transfer_entry_id,
        )
        self._notify("record_matched", result)
        return result

    def unassign_record(self, record_id: int, record_kind) -> int:
        """Undo an assignment by reversing its transfer entry.

        Returns:
            ID of the reversal entry

        Raises:
            NotFoundError: If the record does not exist or is not assigned
            ConflictError: If the record is already Used, or changed concurrently
        """
        kind = parse_record_kind(record_kind)
        record = self._require_record(record_id, kind)
        if record.status == RecordStatus.USED:
            raise ConflictError(f"Record {record_id} is Used and can no longer be unassigned")
        if record.transfer_entry_id is None:
            raise NotFoundError(f"Record {record_id} has no transfer entry to reverse")

        entry = self.db.get_journal_entry(record.transfer_entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(record.transfer_entry_id))
        reversal = self.ledger.reversal_draft(entry, description=f"Unassign {kind.value} record {record_id}")

        reversal_entry_id = self.db.unassign_record(
            record_id=record_id,
            expected_transfer_entry_id=entry.id,
            reversal=reversal,
        )
        logger.info("Unassigned record %s, reversed entry %s", record_id, entry.id)
        self._notify("record_unassigned", record_id, reversal_entry_id)
        return reversal_entry_id

    def mark_record_used(self, record_id: int, record_kind) -> None:
        """Move a Matched record to Used.

        Raises:
            ConflictError: If the record is not Matched
        """
        kind = parse_record_kind(record_kind)
        record = self._require_record(record_id, kind)
        if record.status != RecordStatus.MATCHED:
            raise ConflictError(
                record_wrong_status(record_id, record.status.value, RecordStatus.MATCHED.value)
            )
        self.db.transition_record(record_id, RecordStatus.MATCHED, RecordStatus.USED)
        logger.info("Record %s marked Used", record_id)
        self._notify("record_closed", record_id, RecordStatus.USED)

    def cancel_record(self, record_id: int, record_kind) -> Optional[int]:
        """Cancel an Unmatched record and take its funds out of suspense.

        Returns:
            ID of the entry reversing the suspense posting, if there was one

        Raises:
            ConflictError: If the record is not Unmatched
        """
        kind = parse_record_kind(record_kind)
        record = self._require_record(record_id, kind)
        if record.status != RecordStatus.UNMATCHED:
            hint = " (unassign it first)" if record.status == RecordStatus.MATCHED else ""
            raise ConflictError(
                record_wrong_status(record_id, record.status.value, RecordStatus.UNMATCHED.value) + hint
            )

        reversal = None
        if record.posting_entry_id is not None:
            posting = self.db.get_journal_entry(record.posting_entry_id)
            if posting is None:
                raise NotFoundError(entry_not_found(record.posting_entry_id))
            reversal = self.ledger.reversal_draft(posting, description=f"Cancel {kind.value} record {record_id}")

        reversal_entry_id = self.db.transition_record(
            record_id, RecordStatus.UNMATCHED, RecordStatus.CANCELLED, reversal
        )
        logger.info("Record %s cancelled", record_id)
        self._notify("record_closed", record_id, RecordStatus.CANCELLED)
        return reversal_entry_id
