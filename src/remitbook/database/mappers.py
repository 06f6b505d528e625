"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the record union and the
enum-typed fields stay out of the ORM schema.
"""

from remitbook.domain import entities as domain
from remitbook.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    Client as ORMClient,
    Record as ORMRecord,
    BlacklistItem as ORMBlacklistItem,
    SmsParsingRule as ORMSmsParsingRule,
    ParsingFailure as ORMParsingFailure,
    Settings as ORMSettings,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        type=domain.AccountType(orm_account.type),
        is_group=orm_account.is_group,
        created_at=orm_account.created_at,
        currency=orm_account.currency,
        parent_id=orm_account.parent_id,
        closed_balance=orm_account.closed_balance,
        last_closing_date=orm_account.last_closing_date,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model to domain JournalEntry entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        date=orm_entry.date,
        description=orm_entry.description,
        debit_account_id=orm_entry.debit_account_id,
        credit_account_id=orm_entry.credit_account_id,
        debit_amount=orm_entry.debit_amount,
        credit_amount=orm_entry.credit_amount,
        amount_usd=orm_entry.amount_usd,
        created_at=orm_entry.created_at,
        reversal_of_id=orm_entry.reversal_of_id,
    )


def draft_to_orm(draft: domain.EntryDraft) -> ORMJournalEntry:
    """Build an unsaved JournalEntry row from a validated draft."""
    return ORMJournalEntry(
        date=draft.date,
        description=draft.description,
        debit_account_id=draft.debit_account_id,
        credit_account_id=draft.credit_account_id,
        debit_amount=draft.debit_amount,
        credit_amount=draft.credit_amount,
        amount_usd=draft.amount_usd,
        reversal_of_id=draft.reversal_of_id,
    )


def record_to_domain(orm_record: ORMRecord) -> domain.Record:
    """Convert SQLAlchemy Record model to the matching record entity."""
    common = dict(
        id=orm_record.id,
        date=orm_record.date,
        flow=domain.RecordFlow(orm_record.flow),
        source=orm_record.source,
        account_id=orm_record.account_id,
        amount=orm_record.amount,
        currency=orm_record.currency,
        amount_usd=orm_record.amount_usd,
        status=domain.RecordStatus(orm_record.status),
        created_at=orm_record.created_at,
        person=orm_record.person,
        client_id=orm_record.client_id,
        posting_entry_id=orm_record.posting_entry_id,
        transfer_entry_id=orm_record.transfer_entry_id,
        suspense_balance_before=orm_record.suspense_balance_before,
        suspense_balance_after=orm_record.suspense_balance_after,
        client_balance_before=orm_record.client_balance_before,
        client_balance_after=orm_record.client_balance_after,
        review_flag=orm_record.review_flag,
        notes=orm_record.notes,
    )
    kind = domain.RecordKind(orm_record.kind)
    if kind == domain.RecordKind.CASH:
        return domain.CashRecord(raw_sms=orm_record.raw_sms, **common)
    return domain.UsdtRecord(
        tx_hash=orm_record.tx_hash, wallet_address=orm_record.wallet_address, **common
    )


def client_to_domain(orm_client: ORMClient) -> domain.Client:
    """Convert SQLAlchemy Client model to domain Client entity."""
    return domain.Client(
        id=orm_client.id,
        name=orm_client.name,
        phones=tuple(phone.number for phone in orm_client.phones),
        created_at=orm_client.created_at,
        account_id=orm_client.account_id,
        blacklisted=orm_client.blacklisted,
    )


def blacklist_item_to_domain(orm_item: ORMBlacklistItem) -> domain.BlacklistItem:
    """Convert SQLAlchemy BlacklistItem model to domain BlacklistItem entity."""
    return domain.BlacklistItem(
        id=orm_item.id,
        kind=domain.BlacklistKind(orm_item.kind),
        value=orm_item.value,
        created_at=orm_item.created_at,
        reason=orm_item.reason,
    )


def sms_parsing_rule_to_domain(orm_rule: ORMSmsParsingRule) -> domain.SmsParsingRule:
    """Convert SQLAlchemy SmsParsingRule model to domain SmsParsingRule entity."""
    return domain.SmsParsingRule(
        id=orm_rule.id,
        name=orm_rule.name,
        flow_type=orm_rule.flow_type,
        amount_starts_after=orm_rule.amount_starts_after,
        amount_ends_before=orm_rule.amount_ends_before,
        person_starts_after=orm_rule.person_starts_after,
        person_ends_before=orm_rule.person_ends_before,
        priority=orm_rule.priority,
        created_at=orm_rule.created_at,
        currency=orm_rule.currency,
    )


def parsing_failure_to_domain(orm_failure: ORMParsingFailure) -> domain.ParsingFailure:
    """Convert SQLAlchemy ParsingFailure model to domain ParsingFailure entity."""
    return domain.ParsingFailure(
        id=orm_failure.id,
        raw_sms=orm_failure.raw_sms,
        account_id=orm_failure.account_id,
        reason=orm_failure.reason,
        failed_at=orm_failure.failed_at,
        resolved_record_id=orm_failure.resolved_record_id,
    )


def settings_to_domain(orm_settings: ORMSettings | None) -> domain.Settings:
    """Convert the settings row, or its absence, to a Settings entity."""
    if orm_settings is None:
        return domain.Settings()
    return domain.Settings(
        financial_period_start_date=orm_settings.financial_period_start_date,
        last_closing_date=orm_settings.last_closing_date,
    )
