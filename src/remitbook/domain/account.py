"""Chart-of-accounts domain service."""

import logging
from typing import Optional
from remitbook.database.base import Database
from remitbook.domain.entities import Account as AccountEntity, AccountType
from remitbook.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
)

logger = logging.getLogger(__name__)

CLIENTS_GROUP_ID = "6000"
UNMATCHED_GROUP_ID = "7000"
UNMATCHED_CASH_ID = "7001"
UNMATCHED_USDT_ID = "7002"

# (id, name, type, is_group, currency, parent_id), parents first
SYSTEM_ACCOUNTS: tuple[tuple[str, str, AccountType, bool, Optional[str], Optional[str]], ...] = (
    (CLIENTS_GROUP_ID, "Clients", AccountType.LIABILITIES, True, None, None),
    (UNMATCHED_GROUP_ID, "Unmatched Funds", AccountType.LIABILITIES, True, None, None),
    (UNMATCHED_CASH_ID, "Unmatched Cash", AccountType.LIABILITIES, False, "USD", UNMATCHED_GROUP_ID),
    (UNMATCHED_USDT_ID, "Unmatched USDT", AccountType.LIABILITIES, False, "USDT", UNMATCHED_GROUP_ID),
)


def parse_account_type(value) -> AccountType:
    """Parse an account type name, case-insensitively.

    Raises:
        ValidationError: If the value is not one of the five account types
    """
    if isinstance(value, AccountType):
        return value
    for account_type in AccountType:
        if str(value).strip().lower() == account_type.value.lower():
            return account_type
    valid = ", ".join(t.value for t in AccountType)
    raise ValidationError(f"Invalid account type '{value}'. Must be one of: {valid}")


class ChartOfAccountsService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize chart-of-accounts service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        name: str,
        account_type,
        parent_id: Optional[str] = None,
        currency: Optional[str] = None,
        is_group: bool = False,
        account_id: Optional[str] = None,
    ) -> str:
        """Create a new account.

        Args:
            name: Account name
            account_type: One of Assets, Liabilities, Equity, Income, Expenses
            parent_id: Optional parent group account
            currency: Optional currency code of the account's native leg
            is_group: Whether the account is a group (never posted to)
            account_id: Explicit account code. Generated under the parent when omitted.

        Returns:
            Account ID

        Raises:
            ValidationError: If the type, parent, name or code is invalid
        """
        account_type = parse_account_type(account_type)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name must not be empty")

        if parent_id is not None:
            parent = self.db.get_account(parent_id)
            if parent is None:
                raise ValidationError(f"Parent account {parent_id} not found")
            if not parent.is_group:
                raise ValidationError(f"Parent account {parent_id} is not a group account")

        if account_id is None:
            if parent_id is None:
                raise ValidationError("A top-level account needs an explicit account code")
            account_id = self._next_child_code(parent_id)
        elif self.db.get_account(account_id) is not None:
            raise ValidationError(f"Account {account_id} already exists")

        if currency is not None:
            currency = currency.strip().upper()

        created = self.db.create_account(
            account_id=account_id,
            name=name,
            account_type=account_type.value,
            is_group=is_group,
            currency=currency,
            parent_id=parent_id,
        )
        logger.info("Created account %s (%s, %s)", created, name, account_type.value)
        return created

    def _next_child_code(self, parent_id: str) -> str:
        """Next free dotted code under a parent, e.g. '1000.3'."""
        prefix = f"{parent_id}."
        used = set()
        for child in self.db.list_accounts(parent_id=parent_id):
            suffix = child.id[len(prefix):] if child.id.startswith(prefix) else ""
            if suffix.isdigit():
                used.add(int(suffix))
        n = 1
        while n in used or self.db.get_account(f"{prefix}{n}") is not None:
            n += 1
        return f"{prefix}{n}"

    def get_account(self, account_id: str) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def require_account(self, account_id: str) -> AccountEntity:
        """Get account by ID, raising NotFoundError when it is missing."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(
        self,
        is_group: Optional[bool] = None,
        account_type=None,
        currency: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> list[AccountEntity]:
        """List accounts, optionally filtered.

        Returns:
            List of account entities ordered by ID
        """
        type_value = parse_account_type(account_type).value if account_type is not None else None
        return self.db.list_accounts(
            is_group=is_group,
            account_type=type_value,
            currency=currency.upper() if currency else None,
            parent_id=parent_id,
        )

    def ensure_system_accounts(self) -> list[str]:
        """Create the client and suspense accounts that are missing.

        Returns:
            IDs of the accounts created by this call
        """
        created = []
        for account_id, name, account_type, is_group, currency, parent_id in SYSTEM_ACCOUNTS:
            if self.db.get_account(account_id) is not None:
                continue
            self.db.create_account(
                account_id=account_id,
                name=name,
                account_type=account_type.value,
                is_group=is_group,
                currency=currency,
                parent_id=parent_id,
            )
            created.append(account_id)
        if created:
            logger.info("Created system accounts: %s", ", ".join(created))
        return created
