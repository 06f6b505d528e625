"""SQLAlchemy models for the remitbook store."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Numeric,
    Boolean,
    Text,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(18, 2)


def utc_now() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


class Account(Base):
    """Chart-of-accounts model."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    is_group = Column(Boolean, default=False, nullable=False)
    currency = Column(String, nullable=True)
    parent_id = Column(String, ForeignKey("accounts.id"), nullable=True)
    closed_balance = Column(MONEY, nullable=True)
    last_closing_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    parent = relationship("Account", remote_side=[id], backref="children")


class JournalEntry(Base):
    """Journal entry model. Both legs live in one row."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    date = Column(DateTime, nullable=False)
    description = Column(String, nullable=False)
    debit_account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    credit_account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    debit_amount = Column(MONEY, nullable=False)
    credit_amount = Column(MONEY, nullable=False)
    amount_usd = Column(MONEY, nullable=False)
    # At most one reversal per entry
    reversal_of_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True, unique=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_journal_entries_debit_account", "debit_account_id"),
        Index("ix_journal_entries_credit_account", "credit_account_id"),
        Index("ix_journal_entries_date", "date"),
    )


class Client(Base):
    """Client model."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=True)
    blacklisted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    phones = relationship(
        "ClientPhone", back_populates="client", cascade="all, delete-orphan", order_by="ClientPhone.id"
    )


class ClientPhone(Base):
    """Phone number belonging to a client."""

    __tablename__ = "client_phones"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    number = Column(String, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="phones")


class Record(Base):
    """Cash or USDT record. ``kind`` discriminates the two."""

    __tablename__ = "records"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)
    flow = Column(String, nullable=False)
    source = Column(String, nullable=False)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    currency = Column(String, nullable=False)
    amount_usd = Column(MONEY, nullable=False)
    status = Column(String, nullable=False)
    person = Column(String, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    posting_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    transfer_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    suspense_balance_before = Column(MONEY, nullable=True)
    suspense_balance_after = Column(MONEY, nullable=True)
    client_balance_before = Column(MONEY, nullable=True)
    client_balance_after = Column(MONEY, nullable=True)
    review_flag = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    raw_sms = Column(Text, nullable=True)
    tx_hash = Column(String, nullable=True)
    wallet_address = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_records_status", "status"),
        Index("ix_records_client_id", "client_id"),
    )


class BlacklistItem(Base):
    """Blacklisted name or phone."""

    __tablename__ = "blacklist"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    value = Column(String, nullable=False)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)


class SmsParsingRule(Base):
    """Operator-defined SMS marker rule."""

    __tablename__ = "sms_parsing_rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    flow_type = Column(String, nullable=False)
    amount_starts_after = Column(String, nullable=False)
    amount_ends_before = Column(String, nullable=False)
    person_starts_after = Column(String, nullable=False)
    person_ends_before = Column(String, nullable=False)
    currency = Column(String, nullable=True)
    priority = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)


class ParsingFailure(Base):
    """SMS that could not be parsed."""

    __tablename__ = "parsing_failures"

    id = Column(Integer, primary_key=True)
    raw_sms = Column(Text, nullable=False)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    reason = Column(String, nullable=False)
    failed_at = Column(DateTime, default=utc_now, nullable=False)
    resolved_record_id = Column(Integer, ForeignKey("records.id"), nullable=True)


class Settings(Base):
    """Single-row settings table."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    financial_period_start_date = Column(DateTime, nullable=True)
    last_closing_date = Column(DateTime, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
