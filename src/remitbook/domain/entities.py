"""Domain model entities for remitbook.

These are pure data classes representing business concepts, independent of
database schema. The store layer converts ORM rows into these through
``remitbook.database.mappers``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class AccountType(str, Enum):
    """Chart-of-accounts type."""

    ASSETS = "Assets"
    LIABILITIES = "Liabilities"
    EQUITY = "Equity"
    INCOME = "Income"
    EXPENSES = "Expenses"


class NormalSide(str, Enum):
    """Side of an entry that increases an account's balance."""

    DEBIT = "debit"
    CREDIT = "credit"


# Sign convention per account type. Suspense and client accounts are
# liabilities, so a credit increases them.
NORMAL_BALANCE: dict[AccountType, NormalSide] = {
    AccountType.ASSETS: NormalSide.DEBIT,
    AccountType.EXPENSES: NormalSide.DEBIT,
    AccountType.LIABILITIES: NormalSide.CREDIT,
    AccountType.EQUITY: NormalSide.CREDIT,
    AccountType.INCOME: NormalSide.CREDIT,
}


class RecordKind(str, Enum):
    """Discriminant of the record union."""

    CASH = "cash"
    USDT = "usdt"


class RecordStatus(str, Enum):
    """Reconciliation state of a record."""

    UNMATCHED = "Unmatched"
    MATCHED = "Matched"
    USED = "Used"
    CANCELLED = "Cancelled"


class RecordFlow(str, Enum):
    """Direction of the money a record describes."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


class BlacklistKind(str, Enum):
    """What a blacklist item is compared against."""

    NAME = "Name"
    PHONE = "Phone"


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts entry."""

    id: str
    name: str
    type: AccountType
    is_group: bool
    created_at: datetime
    currency: Optional[str] = None
    parent_id: Optional[str] = None
    closed_balance: Optional[Decimal] = None
    last_closing_date: Optional[datetime] = None

    @property
    def normal_side(self) -> NormalSide:
        return NORMAL_BALANCE[self.type]


@dataclass(frozen=True)
class JournalEntry:
    """Double-entry record of one economic event."""

    id: int
    date: datetime
    description: str
    debit_account_id: str
    credit_account_id: str
    debit_amount: Decimal
    credit_amount: Decimal
    amount_usd: Decimal
    created_at: datetime
    reversal_of_id: Optional[int] = None


@dataclass(frozen=True)
class EntryDraft:
    """A journal entry that has been validated but not yet written."""

    date: datetime
    description: str
    debit_account_id: str
    credit_account_id: str
    debit_amount: Decimal
    credit_amount: Decimal
    amount_usd: Decimal
    reversal_of_id: Optional[int] = None

    def reversed(self, description: str, date: datetime, reversal_of_id: int) -> "EntryDraft":
        """Return the counter-entry with both legs swapped."""
        return EntryDraft(
            date=date,
            description=description,
            debit_account_id=self.credit_account_id,
            credit_account_id=self.debit_account_id,
            debit_amount=self.credit_amount,
            credit_amount=self.debit_amount,
            amount_usd=self.amount_usd,
            reversal_of_id=reversal_of_id,
        )


@dataclass(frozen=True)
class RecordBase:
    """Fields shared by every record kind."""

    id: int
    date: datetime
    flow: RecordFlow
    source: str
    account_id: str
    amount: Decimal
    currency: str
    amount_usd: Decimal
    status: RecordStatus
    created_at: datetime
    person: Optional[str] = None
    client_id: Optional[int] = None
    posting_entry_id: Optional[int] = None
    transfer_entry_id: Optional[int] = None
    suspense_balance_before: Optional[Decimal] = None
    suspense_balance_after: Optional[Decimal] = None
    client_balance_before: Optional[Decimal] = None
    client_balance_after: Optional[Decimal] = None
    review_flag: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CashRecord(RecordBase):
    """Fiat movement, usually produced from a bank SMS."""

    raw_sms: Optional[str] = None
    kind: RecordKind = field(default=RecordKind.CASH, init=False)

    @property
    def category(self) -> str:
        return "fiat"


@dataclass(frozen=True)
class UsdtRecord(RecordBase):
    """Stablecoin movement through one of our wallets."""

    tx_hash: Optional[str] = None
    wallet_address: Optional[str] = None
    kind: RecordKind = field(default=RecordKind.USDT, init=False)

    @property
    def category(self) -> str:
        return "stablecoin"


Record = Union[CashRecord, UsdtRecord]


@dataclass(frozen=True)
class Client:
    """Client with a liability account."""

    id: int
    name: str
    phones: tuple[str, ...]
    created_at: datetime
    account_id: Optional[str] = None
    blacklisted: bool = False


@dataclass(frozen=True)
class BlacklistItem:
    """Name or phone that must never be auto-matched."""

    id: int
    kind: BlacklistKind
    value: str
    created_at: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class SmsParsingRule:
    """Operator-defined marker rule for a bank's SMS format."""

    id: int
    name: str
    flow_type: str
    amount_starts_after: str
    amount_ends_before: str
    person_starts_after: str
    person_ends_before: str
    priority: int
    created_at: datetime
    currency: Optional[str] = None


@dataclass(frozen=True)
class ParsingFailure:
    """SMS that no rule could parse, awaiting manual resolution."""

    id: int
    raw_sms: str
    account_id: str
    reason: str
    failed_at: datetime
    resolved_record_id: Optional[int] = None


@dataclass(frozen=True)
class Settings:
    """Global ledger settings."""

    financial_period_start_date: Optional[datetime] = None
    last_closing_date: Optional[datetime] = None


@dataclass(frozen=True)
class ParsedSms:
    """Structured content of a bank SMS."""

    type: str
    amount: Decimal
    currency: str
    person: str


@dataclass(frozen=True)
class AssignmentResult:
    """Outcome of moving a record from suspense to a client."""

    record_id: int
    client_id: int
    transfer_entry_id: int
    suspense_account_id: str
    client_account_id: str
    suspense_balance_before: Decimal
    suspense_balance_after: Decimal
    client_balance_before: Decimal
    client_balance_after: Decimal


@dataclass(frozen=True)
class StatementLine:
    """One entry in an account statement."""

    entry_id: int
    date: datetime
    description: str
    counter_account_id: str
    direction: NormalSide
    amount_usd: Decimal
    balance_before: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class AccountStatement:
    """Audit breakdown of an account balance."""

    account_id: str
    since: Optional[datetime]
    lines: tuple[StatementLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalanceLine:
    """Debit and credit totals of one account."""

    account_id: str
    account_name: str
    debits: Decimal
    credits: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Ledger-wide debit and credit totals in USD."""

    lines: tuple[TrialBalanceLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    entry_count: int

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


@dataclass(frozen=True)
class PeriodClosing:
    """Result of closing a financial period."""

    closed_at: datetime
    previous_start: Optional[datetime]
    closed_balances: dict[str, Decimal]
