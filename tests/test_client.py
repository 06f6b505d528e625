"""Tests for clients, client accounts and the blacklist."""

import pytest

from remitbook.domain.client import ClientAccountResolver
from remitbook.domain.entities import AccountType, BlacklistKind
from remitbook.domain.errors import ConflictError, NotFoundError, ValidationError


def test_create_client_creates_liability_account(client_service, temp_db):
    """Test that every client gets a linked liability account."""
    client_id = client_service.create_client("علي حسن", phones=["+967 733 111 222"])

    client = client_service.get_client(client_id)
    assert client.account_id == f"6000{client_id}"
    assert client.phones == ("+967 733 111 222",)
    account = temp_db.get_account(client.account_id)
    assert account.type == AccountType.LIABILITIES
    assert account.parent_id == "6000"
    assert account.currency == "USD"
    assert not account.is_group


def test_create_client_rejects_short_phone(client_service):
    """Test phone validation."""
    with pytest.raises(ValidationError, match="Invalid phone number"):
        client_service.create_client("علي", phones=["1234"])


def test_create_client_requires_name(client_service):
    """Test name validation."""
    with pytest.raises(ValidationError, match="must not be empty"):
        client_service.create_client("  ")


def test_require_missing_client(client_service):
    """Test looking up a missing client."""
    with pytest.raises(NotFoundError, match="Client 5 not found"):
        client_service.require_client(5)


def test_account_resolver_relinks_missing_account(client_service, temp_db, chart_service):
    """Test that the resolver is the one place deriving client account codes."""
    resolver = ClientAccountResolver(temp_db)
    client_id = client_service.create_client("سالم")

    assert resolver.account_id_for(client_id) == f"6000{client_id}"
    assert resolver.resolve(client_service.get_client(client_id)) == f"6000{client_id}"
    assert len(chart_service.list_accounts(parent_id="6000")) == 1


def test_blacklist_add_list_remove(client_service):
    """Test managing blacklist items."""
    item_id = client_service.add_blacklist_item("phone", "771234567", reason="chargeback")

    items = client_service.list_blacklist()
    assert [(i.id, i.kind, i.value, i.reason) for i in items] == [
        (item_id, BlacklistKind.PHONE, "771234567", "chargeback")
    ]

    client_service.remove_blacklist_item(item_id)
    assert client_service.list_blacklist() == []
    with pytest.raises(NotFoundError):
        client_service.remove_blacklist_item(item_id)


def test_blacklist_invalid_kind(client_service):
    """Test that only name and phone items exist."""
    with pytest.raises(ValidationError, match="Invalid blacklist kind"):
        client_service.add_blacklist_item("email", "x@example.com")


def test_scan_clients_flags_and_unflags(client_service, sample_client):
    """Test that a scan syncs client flags with the blacklist."""
    other_id = client_service.create_client("سالم عمر")
    item_id = client_service.add_blacklist_item("phone", "00967771234567")

    assert client_service.scan_clients_with_blacklist() == 1
    assert client_service.get_client(sample_client.id).blacklisted
    assert not client_service.get_client(other_id).blacklisted
    assert client_service.scan_clients_with_blacklist() == 0

    client_service.remove_blacklist_item(item_id)
    assert client_service.scan_clients_with_blacklist() == 1
    assert not client_service.get_client(sample_client.id).blacklisted


@pytest.mark.parametrize(
    "account_type, is_group",
    [("Assets", False), ("Liabilities", True)],
)
def test_existing_account_of_wrong_kind_is_not_linked(client_service, chart_service, temp_db, account_type, is_group):
    """Test that a client is never linked to a non-liability or group account."""
    chart_service.create_account(
        "Squatter", account_type, parent_id="6000", is_group=is_group, account_id="60001"
    )

    with pytest.raises(ConflictError, match="not a postable Liabilities account"):
        client_service.create_client("احمد")

    assert client_service.get_client(1).account_id is None
    assert temp_db.get_account("60001").name == "Squatter"
