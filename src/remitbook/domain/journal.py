"""Journal ledger domain service.

Balances are never stored as running state: every balance is derived by
scanning the journal entries that touch an account, applying the sign of the
account type's normal side, in (date, id) order.
"""

import logging
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional, Union

from remitbook.database.base import Database
from remitbook.database.models import utc_now
from remitbook.domain.entities import (
    Account,
    AccountStatement,
    EntryDraft,
    JournalEntry,
    NormalSide,
    StatementLine,
    TrialBalance,
    TrialBalanceLine,
)
from remitbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    entry_not_found,
)
from remitbook.utils.date_parser import optional_utc_naive, to_utc_naive

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

DateLike = Union[date_type, datetime]


def signed_amount(account: Account, entry: JournalEntry) -> Decimal:
    """USD effect of an entry on an account's balance under its normal side."""
    if entry.debit_account_id == account.id:
        side = NormalSide.DEBIT
    elif entry.credit_account_id == account.id:
        side = NormalSide.CREDIT
    else:
        return ZERO
    return entry.amount_usd if side == account.normal_side else -entry.amount_usd


def _positive(value, field_name: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as e:
        raise ValidationError(f"{field_name} is not a number: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero, got {value}")
    return amount


class LedgerService:
    """Service for posting journal entries and deriving balances."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_account(self, account_id: str) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def period_start(self) -> Optional[datetime]:
        """Start of the current financial period, or None before the first close."""
        return self.db.get_settings().financial_period_start_date

    def check_open(self, when: datetime) -> None:
        """Reject a date that falls in a closed period.

        Raises:
            ValidationError: If the date is before the current period start
        """
        start = self.period_start()
        if start is not None and when < start:
            raise ValidationError(
                f"Entry date {when.isoformat()} falls in a closed period "
                f"(current period starts {start.isoformat()})"
            )

    def open_date(self, date: DateLike) -> datetime:
        """Move a date forward to the current period start if it falls before it."""
        when = to_utc_naive(date)
        start = self.period_start()
        if start is not None and when < start:
            return start
        return when

    def build_entry(
        self,
        date: DateLike,
        description: str,
        debit_account_id: str,
        credit_account_id: str,
        debit_amount,
        credit_amount,
        amount_usd,
        reversal_of_id: Optional[int] = None,
    ) -> EntryDraft:
        """Validate an entry without writing it.

        Args:
            date: Entry date
            description: Free-text description
            debit_account_id: Account debited
            credit_account_id: Account credited
            debit_amount: Debit leg amount in the debit account's units
            credit_amount: Credit leg amount in the credit account's units
            amount_usd: Canonical USD amount of the event
            reversal_of_id: Entry this one reverses, if any

        Returns:
            EntryDraft ready to be written

        Raises:
            ValidationError: If an account is missing or a group, the accounts
                are the same, an amount is not positive, or the date
                falls in a closed period
        """
        when = to_utc_naive(date)
        self.check_open(when)
        if debit_account_id == credit_account_id:
            raise ValidationError(
                f"Debit and credit account must differ (both {debit_account_id})"
            )
        for account_id in (debit_account_id, credit_account_id):
            account = self.db.get_account(account_id)
            if account is None:
                raise ValidationError(account_not_found(account_id))
            if account.is_group:
                raise ValidationError(f"Account {account_id} is a group account and cannot be posted to")

        return EntryDraft(
            date=when,
            description=(description or "").strip(),
            debit_account_id=debit_account_id,
            credit_account_id=credit_account_id,
            debit_amount=_positive(debit_amount, "Debit amount"),
            credit_amount=_positive(credit_amount, "Credit amount"),
            amount_usd=_positive(amount_usd, "USD amount"),
            reversal_of_id=reversal_of_id,
        )

    def post_entry(
        self,
        date: DateLike,
        description: str,
        debit_account_id: str,
        credit_account_id: str,
        debit_amount,
        credit_amount,
        amount_usd,
    ) -> int:
        """Post a journal entry. Both legs are written in one transaction.

        Returns:
            Journal entry ID

        Raises:
            ValidationError: If the entry is invalid; nothing is written
            StoreError: If the write failed and was rolled back
        """
        try:
            draft = self.build_entry(
                date,
                description,
                debit_account_id,
                credit_account_id,
                debit_amount,
                credit_amount,
                amount_usd,
            )
        except ValidationError as e:
            logger.warning("Rejected journal entry: %s", e)
            raise
        entry_id = self.db.create_journal_entry(draft)
        logger.info(
            "Posted entry %s: Dr %s / Cr %s USD %s",
            entry_id,
            draft.debit_account_id,
            draft.credit_account_id,
            draft.amount_usd,
        )
        return entry_id

    def require_entry(self, entry_id: int) -> JournalEntry:
        """Get a journal entry, raising NotFoundError when it is missing."""
        entry = self.db.get_journal_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def reversal_draft(
        self,
        entry: JournalEntry,
        description: Optional[str] = None,
        date: Optional[DateLike] = None,
    ) -> EntryDraft:
        """Build the counter-entry of a stored entry."""
        draft = EntryDraft(
            date=entry.date,
            description=entry.description,
            debit_account_id=entry.debit_account_id,
            credit_account_id=entry.credit_account_id,
            debit_amount=entry.debit_amount,
            credit_amount=entry.credit_amount,
            amount_usd=entry.amount_usd,
        )
        when = to_utc_naive(date) if date is not None else utc_now()
        self.check_open(when)
        return draft.reversed(
            description=description or f"Reversal of entry {entry.id}",
            date=when,
            reversal_of_id=entry.id,
        )

    def reverse_entry(
        self,
        entry_id: int,
        description: Optional[str] = None,
        date: Optional[DateLike] = None,
    ) -> int:
        """Post the counter-entry of an existing entry.

        Args:
            entry_id: Entry to reverse
            description: Optional description (defaults to "Reversal of entry N")
            date: Optional date of the reversal (defaults to now)

        Returns:
            ID of the reversing entry

        Raises:
            NotFoundError: If the entry does not exist
            ConflictError: If the entry was already reversed, is itself a reversal,
                or belongs to a record (unassign or cancel the record instead)
            ValidationError: If the date falls in a closed period
        """
        entry = self.require_entry(entry_id)
        existing = self.db.get_reversal_of(entry_id)
        if existing is not None:
            raise ConflictError(f"Journal entry {entry_id} is already reversed by entry {existing.id}")
        if entry.reversal_of_id is not None:
            raise ConflictError(
                f"Journal entry {entry_id} reverses entry {entry.reversal_of_id}; post a new entry instead"
            )
        record = self.db.get_record_by_entry(entry_id)
        if record is not None:
            raise ConflictError(
                f"Journal entry {entry_id} belongs to {record.kind.value} record {record.id}; "
                "unassign or cancel the record instead"
            )
        reversal_id = self.db.create_journal_entry(self.reversal_draft(entry, description, date))
        logger.info("Reversed entry %s with entry %s", entry_id, reversal_id)
        return reversal_id

    def compute_balance(
        self,
        account_id: str,
        since: Optional[DateLike] = None,
        until: Optional[DateLike] = None,
    ) -> Decimal:
        """Derive an account balance from its entries.

        Args:
            account_id: Account ID
            since: Only count entries dated on or after this instant
            until: Only count entries dated strictly before this instant

        Returns:
            Balance in USD, positive on the account's normal side

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._require_account(account_id)
        entries = self.db.list_journal_entries(
            account_id=account_id,
            since=optional_utc_naive(since),
            until=optional_utc_naive(until),
        )
        balance = ZERO
        for entry in entries:
            balance += signed_amount(account, entry)
        return balance

    def get_account_statement(self, account_id: str, since: Optional[DateLike] = None) -> AccountStatement:
        """Line-by-line breakdown of an account balance."""
        account = self._require_account(account_id)
        since = optional_utc_naive(since)
        entries = self.db.list_journal_entries(account_id=account_id, since=since)

        lines = []
        balance = ZERO
        total_debits = ZERO
        total_credits = ZERO
        for entry in entries:
            if entry.debit_account_id == account_id:
                direction = NormalSide.DEBIT
                counter = entry.credit_account_id
                total_debits += entry.amount_usd
            else:
                direction = NormalSide.CREDIT
                counter = entry.debit_account_id
                total_credits += entry.amount_usd
            before = balance
            balance += signed_amount(account, entry)
            lines.append(
                StatementLine(
                    entry_id=entry.id,
                    date=entry.date,
                    description=entry.description,
                    counter_account_id=counter,
                    direction=direction,
                    amount_usd=entry.amount_usd,
                    balance_before=before,
                    balance_after=balance,
                )
            )

        return AccountStatement(
            account_id=account_id,
            since=since,
            lines=tuple(lines),
            total_debits=total_debits,
            total_credits=total_credits,
            balance=balance,
        )

    def compute_balances(
        self,
        since: Optional[DateLike] = None,
        until: Optional[DateLike] = None,
    ) -> dict[str, Decimal]:
        """Balances of every leaf account from a single journal scan."""
        accounts = {acc.id: acc for acc in self.db.list_accounts(is_group=False)}
        balances = {account_id: ZERO for account_id in accounts}
        entries = self.db.list_journal_entries(
            since=optional_utc_naive(since), until=optional_utc_naive(until)
        )
        for entry in entries:
            for account_id in (entry.debit_account_id, entry.credit_account_id):
                account = accounts.get(account_id)
                if account is not None:
                    balances[account_id] += signed_amount(account, entry)
        return balances

    def trial_balance(self) -> TrialBalance:
        """USD debit and credit totals over the whole journal."""
        accounts = {acc.id: acc for acc in self.db.list_accounts(is_group=False)}
        debits: dict[str, Decimal] = {}
        credits: dict[str, Decimal] = {}
        entries = self.db.list_journal_entries()
        for entry in entries:
            debits[entry.debit_account_id] = debits.get(entry.debit_account_id, ZERO) + entry.amount_usd
            credits[entry.credit_account_id] = credits.get(entry.credit_account_id, ZERO) + entry.amount_usd

        lines = []
        for account_id in sorted(set(debits) | set(credits)):
            account = accounts.get(account_id)
            dr = debits.get(account_id, ZERO)
            cr = credits.get(account_id, ZERO)
            if account is not None and account.normal_side == NormalSide.DEBIT:
                balance = dr - cr
            else:
                balance = cr - dr
            lines.append(
                TrialBalanceLine(
                    account_id=account_id,
                    account_name=account.name if account is not None else "",
                    debits=dr,
                    credits=cr,
                    balance=balance,
                )
            )

        return TrialBalance(
            lines=tuple(lines),
            total_debits=sum(debits.values(), ZERO),
            total_credits=sum(credits.values(), ZERO),
            entry_count=len(entries),
        )

    def list_entries(
        self,
        account_id: Optional[str] = None,
        since: Optional[DateLike] = None,
    ) -> list[JournalEntry]:
        """List journal entries in (date, id) order."""
        if account_id is not None:
            self._require_account(account_id)
        return self.db.list_journal_entries(account_id=account_id, since=optional_utc_naive(since))

    def count_entries(self) -> int:
        """Count all journal entries."""
        return self.db.count_journal_entries()
