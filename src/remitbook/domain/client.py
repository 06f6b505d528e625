"""Client directory, client account references and blacklist management."""

import logging
from typing import Optional

from remitbook.database.base import Database
from remitbook.domain.account import CLIENTS_GROUP_ID
from remitbook.domain.entities import (
    AccountType,
    BlacklistItem,
    BlacklistKind,
    Client,
)
from remitbook.domain.errors import NotFoundError, ValidationError, client_not_found
from remitbook.domain.matching import blacklist_hit, normalize_phone

logger = logging.getLogger(__name__)


class ClientAccountResolver:
    """Maps clients to their liability accounts.

    The ``6000<clientId>`` naming convention lives here and nowhere else.
    Everything else reads ``Client.account_id``.
    """

    def __init__(self, db: Database, group_id: str = CLIENTS_GROUP_ID):
        self.db = db
        self.group_id = group_id

    def account_id_for(self, client_id: int) -> str:
        return f"{self.group_id}{client_id}"

    def resolve(self, client: Client) -> str:
        """Return the client's account, creating and linking it when missing.

        Raises:
            ConflictError: If the account ID is taken by an account that is
                not a postable Liabilities account
        """
        if client.account_id is not None and self.db.get_account(client.account_id) is not None:
            return client.account_id
        account_id = client.account_id or self.account_id_for(client.id)
        parent_id = self.group_id if self.db.get_account(self.group_id) is not None else None
        self.db.link_client_account(
            client_id=client.id,
            account_id=account_id,
            name=client.name,
            account_type=AccountType.LIABILITIES.value,
            parent_id=parent_id,
            currency="USD",
        )
        logger.info("Linked client %s to account %s", client.id, account_id)
        return account_id


class ClientService:
    """Service for managing clients and the blacklist."""

    def __init__(self, db: Database, account_resolver: Optional[ClientAccountResolver] = None):
        """Initialize client service.

        Args:
            db: Database instance
            account_resolver: Resolver for client liability accounts
        """
        self.db = db
        self.account_resolver = account_resolver or ClientAccountResolver(db)

    def create_client(self, name: str, phones: Optional[list[str]] = None) -> int:
        """Create a client together with its liability account.

        Args:
            name: Client name
            phones: Optional list of phone numbers

        Returns:
            Client ID

        Raises:
            ValidationError: If the name is empty or a phone has no digits
            ConflictError: If the client's account ID is taken by another kind
                of account; the client is kept without an account
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Client name must not be empty")
        cleaned = []
        for phone in phones or []:
            phone = phone.strip()
            if not normalize_phone(phone):
                raise ValidationError(f"Invalid phone number '{phone}'")
            cleaned.append(phone)

        client_id = self.db.create_client(name=name, phones=cleaned)
        self.account_resolver.resolve(self.require_client(client_id))
        logger.info("Created client %s (%s)", client_id, name)
        return client_id

    def get_client(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        return self.db.get_client(client_id)

    def require_client(self, client_id: int) -> Client:
        """Get client by ID, raising NotFoundError when it is missing."""
        client = self.db.get_client(client_id)
        if client is None:
            raise NotFoundError(client_not_found(client_id))
        return client

    def list_clients(self) -> list[Client]:
        """List all clients."""
        return self.db.list_clients()

    def add_blacklist_item(self, kind, value: str, reason: Optional[str] = None) -> int:
        """Add a name or phone to the blacklist.

        Raises:
            ValidationError: If the kind is unknown or the value is empty
        """
        try:
            kind = BlacklistKind(kind) if not isinstance(kind, BlacklistKind) else kind
        except ValueError:
            kind_names = ", ".join(k.value for k in BlacklistKind)
            raise ValidationError(f"Invalid blacklist kind '{kind}'. Must be one of: {kind_names}")
        value = (value or "").strip()
        if not value:
            raise ValidationError("Blacklist value must not be empty")
        item_id = self.db.create_blacklist_item(kind=kind.value, value=value, reason=reason)
        logger.info("Blacklisted %s '%s'", kind.value, value)
        return item_id

    def list_blacklist(self) -> list[BlacklistItem]:
        """List all blacklist items."""
        return self.db.list_blacklist()

    def remove_blacklist_item(self, item_id: int) -> None:
        """Remove a blacklist item."""
        self.db.delete_blacklist_item(item_id)

    def scan_clients_with_blacklist(self) -> int:
        """Flag every client that a blacklist item applies to.

        Clients that no longer match any item are unflagged.

        Returns:
            Number of clients whose flag changed
        """
        items = self.db.list_blacklist()
        changed = 0
        for client in self.db.list_clients():
            hit = any(blacklist_hit(item, client.name, client.phones) for item in items)
            if hit != client.blacklisted:
                self.db.set_client_blacklisted(client.id, hit)
                changed += 1
                if hit:
                    logger.warning("Client %s (%s) is blacklisted", client.id, client.name)
        return changed
