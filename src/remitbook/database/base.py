"""Abstract database interface.

Every mutating method is one atomic store operation: either all of its rows
are written or none are. Compare-and-set methods raise ConflictError when the
guarded state no longer holds, after rolling back everything they wrote.
"""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from remitbook.domain.entities import (
    Account,
    BlacklistItem,
    Client,
    EntryDraft,
    JournalEntry,
    ParsingFailure,
    Record,
    RecordStatus,
    Settings,
    SmsParsingRule,
)


class Database(ABC):
    """Abstract database interface for remitbook."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        account_id: str,
        name: str,
        account_type: str,
        is_group: bool = False,
        currency: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> str:
        """Create an account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(
        self,
        is_group: Optional[bool] = None,
        account_type: Optional[str] = None,
        currency: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> list[Account]:
        """List accounts ordered by ID, with optional filters."""
        pass

    # Journal operations
    @abstractmethod
    def create_journal_entry(self, draft: EntryDraft) -> int:
        """Write both legs of an entry. Returns entry ID.

        Raises ConflictError when the draft reverses an entry that already
        has a reversal.
        """
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID."""
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        account_id: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[JournalEntry]:
        """List entries ordered by (date, id).

        Args:
            account_id: Only entries with this account on either leg
            since: Only entries dated on or after this instant
            until: Only entries dated strictly before this instant
        """
        pass

    @abstractmethod
    def count_journal_entries(self) -> int:
        """Count all journal entries."""
        pass

    @abstractmethod
    def get_reversal_of(self, entry_id: int) -> Optional[JournalEntry]:
        """Get the entry that reverses the given entry, if any."""
        pass

    # Record operations
    @abstractmethod
    def create_record(
        self,
        kind: str,
        date: datetime,
        flow: str,
        source: str,
        account_id: str,
        amount: Decimal,
        currency: str,
        amount_usd: Decimal,
        posting: EntryDraft,
        person: Optional[str] = None,
        notes: Optional[str] = None,
        raw_sms: Optional[str] = None,
        tx_hash: Optional[str] = None,
        wallet_address: Optional[str] = None,
        resolves_failure_id: Optional[int] = None,
    ) -> int:
        """Create an Unmatched record together with its suspense posting.

        When resolves_failure_id is given, the parsing failure is linked to
        the new record in the same write; ConflictError if it was already
        resolved. Returns record ID.
        """
        pass

    @abstractmethod
    def get_record(self, record_id: int) -> Optional[Record]:
        """Get record by ID."""
        pass

    @abstractmethod
    def get_record_by_entry(self, entry_id: int) -> Optional[Record]:
        """Get the record whose suspense posting or transfer is the given entry."""
        pass

    @abstractmethod
    def list_records(
        self,
        kind: Optional[str] = None,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        account_id: Optional[str] = None,
    ) -> list[Record]:
        """List records ordered by ID, with optional filters."""
        pass

    @abstractmethod
    def sms_seen_since(self, account_id: str, raw_sms: str, since: datetime) -> bool:
        """Check whether a record with this SMS text was created since the given time."""
        pass

    @abstractmethod
    def assign_record(
        self,
        record_id: int,
        client_id: int,
        transfer: EntryDraft,
        suspense_balance_before: Decimal,
        suspense_balance_after: Decimal,
        client_balance_before: Decimal,
        client_balance_after: Decimal,
    ) -> int:
        """Post the transfer entry and mark the record Matched.

        The record update only applies while the record is Unmatched with no
        client and no transfer entry. Returns the transfer entry ID.
        """
        pass

    @abstractmethod
    def unassign_record(
        self, record_id: int, expected_transfer_entry_id: int, reversal: EntryDraft
    ) -> int:
        """Post the reversal and reset the record to Unmatched.

        Guarded on the record still being Matched by expected_transfer_entry_id.
        Returns the reversal entry ID.
        """
        pass

    @abstractmethod
    def transition_record(
        self,
        record_id: int,
        from_status: RecordStatus,
        to_status: RecordStatus,
        reversal: Optional[EntryDraft] = None,
    ) -> Optional[int]:
        """Move a record between statuses, optionally posting a reversal.

        Returns the reversal entry ID when one was posted.
        """
        pass

    @abstractmethod
    def set_record_review_flag(self, record_id: int, review_flag: Optional[str]) -> None:
        """Set or clear the review flag of a record."""
        pass

    # Client operations
    @abstractmethod
    def create_client(self, name: str, phones: list[str]) -> int:
        """Create a client. Returns client ID."""
        pass

    @abstractmethod
    def get_client(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        pass

    @abstractmethod
    def list_clients(self) -> list[Client]:
        """List all clients."""
        pass

    @abstractmethod
    def link_client_account(
        self,
        client_id: int,
        account_id: str,
        name: str,
        account_type: str,
        parent_id: Optional[str],
        currency: Optional[str],
    ) -> str:
        """Create the client's liability account if missing and link it. Returns account ID.

        Raises:
            ConflictError: If an account with that ID exists but is not a
                postable account of the given type
        """
        pass

    @abstractmethod
    def set_client_blacklisted(self, client_id: int, blacklisted: bool) -> None:
        """Set the blacklist flag on a client."""
        pass

    # Blacklist operations
    @abstractmethod
    def create_blacklist_item(self, kind: str, value: str, reason: Optional[str] = None) -> int:
        """Create a blacklist item. Returns item ID."""
        pass

    @abstractmethod
    def list_blacklist(self) -> list[BlacklistItem]:
        """List all blacklist items."""
        pass

    @abstractmethod
    def delete_blacklist_item(self, item_id: int) -> None:
        """Delete a blacklist item."""
        pass

    # SMS parsing rules and failures
    @abstractmethod
    def create_sms_parsing_rule(
        self,
        name: str,
        flow_type: str,
        amount_starts_after: str,
        amount_ends_before: str,
        person_starts_after: str,
        person_ends_before: str,
        currency: Optional[str] = None,
        priority: int = 0,
    ) -> int:
        """Create an SMS parsing rule. Returns rule ID."""
        pass

    @abstractmethod
    def list_sms_parsing_rules(self) -> list[SmsParsingRule]:
        """List rules in evaluation order (priority, then ID)."""
        pass

    @abstractmethod
    def delete_sms_parsing_rule(self, rule_id: int) -> None:
        """Delete an SMS parsing rule."""
        pass

    @abstractmethod
    def create_parsing_failure(self, raw_sms: str, account_id: str, reason: str) -> int:
        """Record an unparsed SMS. Returns failure ID."""
        pass

    @abstractmethod
    def get_parsing_failure(self, failure_id: int) -> Optional[ParsingFailure]:
        """Get parsing failure by ID."""
        pass

    @abstractmethod
    def list_parsing_failures(self, unresolved_only: bool = False) -> list[ParsingFailure]:
        """List parsing failures, oldest first."""
        pass

    # Settings and period closing
    @abstractmethod
    def get_settings(self) -> Settings:
        """Get global settings."""
        pass

    @abstractmethod
    def close_period(self, closed_balances: dict[str, Decimal], closed_at: datetime) -> None:
        """Store closing snapshots and move the period boundary to closed_at."""
        pass
