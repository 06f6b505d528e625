"""SMS ingestion pipeline.

raw SMS -> parser -> Unmatched cash record posted to suspense -> matcher ->
automatic assignment when exactly one client matches.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union

from remitbook.database.base import Database
from remitbook.database.models import utc_now
from remitbook.domain.entities import (
    Account,
    ParsedSms,
    ParsingFailure,
    RecordKind,
    RecordStatus,
    SmsParsingRule,
)
from remitbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
)
from remitbook.domain.journal import LedgerService
from remitbook.domain.matching import ClientMatcher, MatchResult, MatchStatus
from remitbook.domain.reconciliation import ReconciliationService
from remitbook.domain.records import RecordService, to_cents
from remitbook.domain.sms_parser import (
    DEFAULT_RULES,
    FLOW_TYPES,
    PatternRule,
    SmsParser,
    validate_parsed_sms,
)

logger = logging.getLogger(__name__)

DUPLICATE_WINDOW = timedelta(hours=24)
BLACKLISTED_FLAG = "Blacklisted"

# Units of currency per USD
DEFAULT_USD_RATES: dict[str, Decimal] = {"USD": Decimal("1"), "USDT": Decimal("1")}


class IngestionStatus(str, Enum):
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestionResult:
    """What happened to one ingested message."""

    status: IngestionStatus
    record_id: Optional[int] = None
    failure_id: Optional[int] = None
    reason: Optional[str] = None
    parsed: Optional[ParsedSms] = None
    match: Optional[MatchResult] = None
    transfer_entry_id: Optional[int] = None

    @property
    def assigned(self) -> bool:
        return self.transfer_entry_id is not None


class IngestionService:
    """Service turning bank messages into reconciled records."""

    def __init__(
        self,
        db: Database,
        usd_rates: Optional[Mapping[str, Any]] = None,
        builtin_rules: Sequence[PatternRule] = DEFAULT_RULES,
        matcher: Optional[ClientMatcher] = None,
        reconciliation: Optional[ReconciliationService] = None,
        records: Optional[RecordService] = None,
        auto_assign: bool = True,
    ):
        """Initialize ingestion service.

        Args:
            db: Database instance
            usd_rates: Units of each currency per USD, e.g. {"YER": 530}
            builtin_rules: Built-in parser rules, in evaluation order
            matcher: Client matcher
            reconciliation: Service used for automatic assignment
            records: Service used to create records
            auto_assign: Assign records that match exactly one client
        """
        self.db = db
        self.ledger = ledger = LedgerService(db)
        self.usd_rates = dict(DEFAULT_USD_RATES)
        for code, rate in (usd_rates or {}).items():
            self.usd_rates[code.upper()] = Decimal(str(rate))
        self.builtin_rules = tuple(builtin_rules)
        self.matcher = matcher or ClientMatcher()
        self.reconciliation = reconciliation or ReconciliationService(db, ledger=ledger)
        self.records = records or RecordService(db, ledger=ledger)
        self.auto_assign = auto_assign

    def _require_sms_account(self, account_id: str) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise ValidationError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(f"Account {account_id} is a group account")
        if not account.currency:
            raise ValidationError(f"Account {account_id} has no currency")
        return account

    def to_usd(self, amount: Decimal, currency: str) -> Optional[Decimal]:
        """Convert an amount to USD, or None when no rate is known."""
        rate = self.usd_rates.get(currency.upper())
        if rate is None or rate <= 0:
            return None
        return to_cents(amount / rate)

    def parser(self) -> SmsParser:
        """Parser with the current operator rules in front of the built-in ones."""
        return SmsParser(rules=self.builtin_rules, custom_rules=self.db.list_sms_parsing_rules())

    def _fail(self, raw_sms: str, account_id: str, reason: str) -> IngestionResult:
        failure_id = self.db.create_parsing_failure(raw_sms=raw_sms, account_id=account_id, reason=reason)
        logger.info("Stored parsing failure %s for account %s: %s", failure_id, account_id, reason)
        return IngestionResult(status=IngestionStatus.FAILED, failure_id=failure_id, reason=reason)

    def _is_duplicate(self, raw_sms: str, account_id: str) -> bool:
        return self.db.sms_seen_since(account_id, raw_sms, utc_now() - DUPLICATE_WINDOW)

    def ingest_sms(
        self,
        raw_sms: str,
        account_id: str,
        received_at: Optional[Union[date_type, datetime]] = None,
    ) -> IngestionResult:
        """Parse, record and try to match one bank SMS.

        Args:
            raw_sms: SMS text as received
            account_id: Bank account the SMS belongs to
            received_at: When the SMS arrived (defaults to now). A date in a
                closed period is booked at the current period start.

        Returns:
            IngestionResult

        Raises:
            ValidationError: If the account is missing, a group, or has no currency
        """
        account = self._require_sms_account(account_id)
        if not raw_sms or not raw_sms.strip():
            raise ValidationError("SMS text must not be empty")
        if self._is_duplicate(raw_sms, account_id):
            logger.info("Skipped duplicate SMS for account %s", account_id)
            return IngestionResult(status=IngestionStatus.DUPLICATE, reason="Duplicate SMS within 24 hours")

        outcome = self.parser().parse_sms(raw_sms, default_currency=account.currency)
        if not outcome.ok:
            return self._fail(raw_sms, account_id, outcome.failure_reason)
        return self._record(outcome.parsed, account, raw_sms, received_at)

    def ingest_parsed(
        self,
        parsed_mapping: Mapping[str, Any],
        account_id: str,
        raw_sms: str,
        received_at: Optional[Union[date_type, datetime]] = None,
    ) -> IngestionResult:
        """Record an SMS already parsed elsewhere, e.g. by an extraction model.

        Raises:
            ValidationError: If the account or the parsed fields are invalid
        """
        account = self._require_sms_account(account_id)
        parsed = validate_parsed_sms(parsed_mapping, default_currency=account.currency)
        if self._is_duplicate(raw_sms, account_id):
            logger.info("Skipped duplicate SMS for account %s", account_id)
            return IngestionResult(status=IngestionStatus.DUPLICATE, reason="Duplicate SMS within 24 hours")
        return self._record(parsed, account, raw_sms, received_at)

    def _record(
        self,
        parsed: ParsedSms,
        account: Account,
        raw_sms: str,
        received_at: Optional[Union[date_type, datetime]],
    ) -> IngestionResult:
        amount_usd = self.to_usd(parsed.amount, parsed.currency)
        if amount_usd is None:
            return self._fail(raw_sms, account.id, f"No USD rate for {parsed.currency}")
        if amount_usd <= 0:
            return self._fail(raw_sms, account.id, f"USD value of {parsed.amount} {parsed.currency} rounds to zero")

        # Late messages are booked in the open period
        when = self.ledger.open_date(received_at) if received_at is not None else None

        record_id = self.records.create_record(
            kind=RecordKind.CASH,
            account_id=account.id,
            flow=parsed.type,
            amount=parsed.amount,
            currency=parsed.currency,
            amount_usd=amount_usd,
            person=parsed.person,
            date=when,
            source="SMS",
            raw_sms=raw_sms,
        )
        match, transfer_entry_id = self._match(record_id, parsed.person, account.id, amount_usd)
        return IngestionResult(
            status=IngestionStatus.RECORDED,
            record_id=record_id,
            parsed=parsed,
            match=match,
            transfer_entry_id=transfer_entry_id,
        )

    def _match(
        self, record_id: int, person: str, account_id: str, amount_usd: Decimal
    ) -> tuple[MatchResult, Optional[int]]:
        history = [r for r in self.db.list_records() if r.client_id is not None]
        result = self.matcher.match(
            person,
            self.db.list_clients(),
            blacklist=self.db.list_blacklist(),
            account_id=account_id,
            history=history,
            amount_usd=amount_usd,
        )

        if result.status == MatchStatus.BLACKLISTED:
            self.db.set_record_review_flag(record_id, BLACKLISTED_FLAG)
            return result, None
        if result.status != MatchStatus.MATCHED or not self.auto_assign:
            return result, None

        try:
            assignment = self.reconciliation.assign_record_to_client(
                record_id, RecordKind.CASH, result.client_id
            )
        except ConflictError as e:
            logger.warning("Automatic assignment of record %s skipped: %s", record_id, e)
            return result, None
        return result, assignment.transfer_entry_id

    def match_pending_records(self) -> int:
        """Re-run the matcher over every Unmatched cash record.

        Returns:
            Number of records assigned to a client
        """
        assigned = 0
        pending = self.db.list_records(kind=RecordKind.CASH.value, status=RecordStatus.UNMATCHED.value)
        for record in pending:
            if not record.person or record.client_id is not None:
                continue
            _, transfer_entry_id = self._match(record.id, record.person, record.account_id, record.amount_usd)
            if transfer_entry_id is not None:
                assigned += 1
        logger.info("Matched %d of %d pending records", assigned, len(pending))
        return assigned

    def resolve_parsing_failure(self, failure_id: int, parsed_mapping: Mapping[str, Any]) -> int:
        """Create the record for a failed SMS from manually supplied fields.

        Returns:
            ID of the new record

        Raises:
            NotFoundError: If the failure does not exist
            ConflictError: If the failure was already resolved
            ValidationError: If the fields are invalid or no USD rate is known
        """
        failure = self.db.get_parsing_failure(failure_id)
        if failure is None:
            raise NotFoundError(f"Parsing failure {failure_id} not found")
        if failure.resolved_record_id is not None:
            raise ConflictError(
                f"Parsing failure {failure_id} is already resolved by record {failure.resolved_record_id}"
            )
        account = self._require_sms_account(failure.account_id)
        parsed = validate_parsed_sms(parsed_mapping, default_currency=account.currency)
        amount_usd = self.to_usd(parsed.amount, parsed.currency)
        if amount_usd is None or amount_usd <= 0:
            raise ValidationError(f"No usable USD rate for {parsed.amount} {parsed.currency}")

        record_id = self.records.create_record(
            kind=RecordKind.CASH,
            account_id=account.id,
            flow=parsed.type,
            amount=parsed.amount,
            currency=parsed.currency,
            amount_usd=amount_usd,
            person=parsed.person,
            date=self.ledger.open_date(failure.failed_at),
            source="SMS",
            raw_sms=failure.raw_sms,
            resolves_failure_id=failure_id,
        )
        logger.info("Resolved parsing failure %s with record %s", failure_id, record_id)
        self._match(record_id, parsed.person, account.id, amount_usd)
        return record_id

    def list_failures(self, unresolved_only: bool = True) -> list[ParsingFailure]:
        """List parsing failures."""
        return self.db.list_parsing_failures(unresolved_only=unresolved_only)

    def add_parsing_rule(
        self,
        name: str,
        flow_type: str,
        amount_starts_after: str,
        amount_ends_before: str,
        person_starts_after: str,
        person_ends_before: str = "",
        currency: Optional[str] = None,
        priority: int = 0,
    ) -> int:
        """Add an operator marker rule, tried before the built-in rules.

        Raises:
            ValidationError: If the name, flow type or a required marker is missing
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Rule name must not be empty")
        flow_type = (flow_type or "").strip().lower()
        if flow_type not in FLOW_TYPES:
            raise ValidationError(f"Invalid flow type '{flow_type}'. Must be credit or debit")
        if not amount_starts_after or not person_starts_after:
            raise ValidationError("The amount and person start markers are required")
        rule_id = self.db.create_sms_parsing_rule(
            name=name,
            flow_type=flow_type,
            amount_starts_after=amount_starts_after,
            amount_ends_before=amount_ends_before or "",
            person_starts_after=person_starts_after,
            person_ends_before=person_ends_before or "",
            currency=currency.upper() if currency else None,
            priority=priority,
        )
        logger.info("Added SMS parsing rule %s (%s)", rule_id, name)
        return rule_id

    def list_parsing_rules(self) -> list[SmsParsingRule]:
        """List operator rules in evaluation order."""
        return self.db.list_sms_parsing_rules()

    def delete_parsing_rule(self, rule_id: int) -> None:
        """Delete an operator rule."""
        self.db.delete_sms_parsing_rule(rule_id)
