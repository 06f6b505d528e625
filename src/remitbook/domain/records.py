"""Cash and USDT record domain service."""

import logging
from datetime import date as date_type, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from remitbook.database.base import Database
from remitbook.database.models import utc_now
from remitbook.domain.entities import Record, RecordFlow, RecordKind, RecordStatus
from remitbook.domain.errors import NotFoundError, ValidationError, record_not_found
from remitbook.domain.journal import LedgerService
from remitbook.domain.reconciliation import SuspenseAccountResolver, parse_record_kind
from remitbook.utils.date_parser import to_utc_naive

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_cents(value) -> Decimal:
    """Round a monetary value to cents, the precision the store keeps."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_flow(value) -> RecordFlow:
    """Parse a record flow, accepting credit/debit as inflow/outflow."""
    if isinstance(value, RecordFlow):
        return value
    text = str(value).strip().lower()
    aliases = {"credit": RecordFlow.INFLOW, "debit": RecordFlow.OUTFLOW}
    if text in aliases:
        return aliases[text]
    try:
        return RecordFlow(text)
    except ValueError:
        raise ValidationError(f"Invalid flow '{value}'. Must be inflow or outflow")


class RecordService:
    """Service for creating and querying records.

    Every record is created together with the entry that parks its funds in
    suspense: an inflow debits the bank or wallet and credits suspense, an
    outflow does the opposite.
    """

    def __init__(
        self,
        db: Database,
        ledger: Optional[LedgerService] = None,
        suspense_resolver: Optional[SuspenseAccountResolver] = None,
    ):
        """Initialize record service.

        Args:
            db: Database instance
            ledger: Ledger used to validate the suspense posting
            suspense_resolver: Maps record kinds to suspense accounts
        """
        self.db = db
        self.ledger = ledger or LedgerService(db)
        self.suspense_resolver = suspense_resolver or SuspenseAccountResolver()

    def create_record(
        self,
        kind,
        account_id: str,
        flow,
        amount,
        currency: str,
        amount_usd,
        person: Optional[str] = None,
        date: Optional[Union[date_type, datetime]] = None,
        source: str = "Manual",
        notes: Optional[str] = None,
        raw_sms: Optional[str] = None,
        tx_hash: Optional[str] = None,
        wallet_address: Optional[str] = None,
        resolves_failure_id: Optional[int] = None,
    ) -> int:
        """Create an Unmatched record and its suspense posting in one write.

        Args:
            kind: "cash" or "usdt"
            account_id: Bank account or wallet the money moved through
            flow: "inflow" or "outflow"
            amount: Amount in the record's currency
            currency: Currency code
            amount_usd: USD value of the amount
            person: Sender or recipient as received
            date: When the money moved (defaults to now)
            source: Where the record came from, e.g. SMS or Manual
            notes: Free-text notes
            raw_sms: Original SMS text (cash records only)
            tx_hash: Transaction hash (USDT records only)
            wallet_address: Counterparty wallet (USDT records only)
            resolves_failure_id: Parsing failure this record resolves

        Returns:
            Record ID

        Raises:
            ValidationError: If the kind, flow, amounts or account are invalid
        """
        kind = parse_record_kind(kind)
        flow = parse_flow(flow)
        if kind == RecordKind.CASH and (tx_hash or wallet_address):
            raise ValidationError("Cash records cannot carry a transaction hash or wallet address")
        if kind == RecordKind.USDT and raw_sms:
            raise ValidationError("USDT records cannot carry an SMS")

        currency = (currency or "").strip().upper()
        if not currency:
            raise ValidationError("Currency must not be empty")
        try:
            amount = to_cents(amount)
            amount_usd = to_cents(amount_usd)
        except ArithmeticError as e:
            raise ValidationError(f"Invalid amount: {e}") from e

        suspense_id = self.suspense_resolver.resolve(kind)
        when = to_utc_naive(date) if date is not None else utc_now()
        label = f"{source} {kind.value} {flow.value}: {amount} {currency}"
        if person:
            label = f"{label} {person}"

        if flow == RecordFlow.INFLOW:
            posting = self.ledger.build_entry(
                date=when,
                description=label,
                debit_account_id=account_id,
                credit_account_id=suspense_id,
                debit_amount=amount,
                credit_amount=amount_usd,
                amount_usd=amount_usd,
            )
        else:
            posting = self.ledger.build_entry(
                date=when,
                description=label,
                debit_account_id=suspense_id,
                credit_account_id=account_id,
                debit_amount=amount_usd,
                credit_amount=amount,
                amount_usd=amount_usd,
            )

        record_id = self.db.create_record(
            kind=kind.value,
            date=when,
            flow=flow.value,
            source=source,
            account_id=account_id,
            amount=amount,
            currency=currency,
            amount_usd=amount_usd,
            posting=posting,
            person=person,
            notes=notes,
            raw_sms=raw_sms,
            tx_hash=tx_hash,
            wallet_address=wallet_address,
            resolves_failure_id=resolves_failure_id,
        )
        logger.info("Created %s record %s (%s USD %s)", kind.value, record_id, flow.value, amount_usd)
        return record_id

    def get_record(self, record_id: int) -> Optional[Record]:
        """Get record by ID."""
        return self.db.get_record(record_id)

    def require_record(self, record_id: int, kind=None) -> Record:
        """Get a record, optionally of a given kind, raising NotFoundError otherwise."""
        record = self.db.get_record(record_id)
        expected = parse_record_kind(kind) if kind is not None else None
        if record is None or (expected is not None and record.kind != expected):
            if expected is None:
                raise NotFoundError(f"Record {record_id} not found")
            raise NotFoundError(record_not_found(record_id, expected.value))
        return record

    def list_records(
        self,
        kind=None,
        status=None,
        client_id: Optional[int] = None,
        account_id: Optional[str] = None,
    ) -> list[Record]:
        """List records, optionally filtered."""
        kind_value = parse_record_kind(kind).value if kind is not None else None
        status_value = None
        if status is not None:
            try:
                status_value = RecordStatus(str(status).strip().capitalize()).value
            except ValueError:
                statuses = ", ".join(s.value for s in RecordStatus)
                raise ValidationError(f"Invalid status '{status}'. Must be one of: {statuses}")
        return self.db.list_records(
            kind=kind_value, status=status_value, client_id=client_id, account_id=account_id
        )
