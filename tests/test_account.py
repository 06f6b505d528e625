"""Tests for the chart of accounts."""

import pytest

from remitbook.domain.account import ChartOfAccountsService
from remitbook.domain.entities import AccountType, NormalSide
from remitbook.domain.errors import NotFoundError, ValidationError


def test_ensure_system_accounts_creates_suspense_and_client_groups(temp_db):
    """Test that the client group and both suspense accounts are created."""
    service = ChartOfAccountsService(temp_db)

    created = service.ensure_system_accounts()

    assert created == ["6000", "7000", "7001", "7002"]
    cash = service.get_account("7001")
    usdt = service.get_account("7002")
    assert cash.type == AccountType.LIABILITIES
    assert cash.currency == "USD"
    assert cash.parent_id == "7000"
    assert not cash.is_group
    assert usdt.currency == "USDT"
    assert service.get_account("6000").is_group
    assert service.get_account("7000").is_group


def test_ensure_system_accounts_is_idempotent(chart_service):
    """Test that a second call creates nothing."""
    assert chart_service.ensure_system_accounts() == []
    assert len(chart_service.list_accounts()) == 4


def test_suspense_accounts_are_credit_normal(chart_service):
    """Test the sign convention of liability accounts."""
    assert chart_service.get_account("7001").normal_side == NormalSide.CREDIT


def test_create_child_account_generates_dotted_code(chart_service):
    """Test that codes under a parent are generated in sequence."""
    chart_service.create_account("Banks", "Assets", account_id="1000", is_group=True)

    first = chart_service.create_account("Kuraimi", "Assets", parent_id="1000", currency="yer")
    second = chart_service.create_account("Tadhamon", "Assets", parent_id="1000", currency="YER")

    assert first == "1000.1"
    assert second == "1000.2"
    account = chart_service.get_account(first)
    assert account.currency == "YER"
    assert account.normal_side == NormalSide.DEBIT


def test_create_account_type_is_case_insensitive(chart_service):
    """Test that account types are parsed case-insensitively."""
    account_id = chart_service.create_account("Fees", "income", account_id="4000")
    assert chart_service.get_account(account_id).type == AccountType.INCOME


def test_create_top_level_account_requires_code(chart_service):
    """Test that a top-level account needs an explicit code."""
    with pytest.raises(ValidationError, match="explicit account code"):
        chart_service.create_account("Banks", "Assets")


def test_create_account_invalid_type(chart_service):
    """Test that an unknown account type is rejected."""
    with pytest.raises(ValidationError, match="Invalid account type"):
        chart_service.create_account("Banks", "Revenue", account_id="1000")


def test_create_account_empty_name(chart_service):
    """Test that an empty name is rejected."""
    with pytest.raises(ValidationError, match="must not be empty"):
        chart_service.create_account("  ", "Assets", account_id="1000")


def test_create_account_parent_must_exist(chart_service):
    """Test that a missing parent is rejected."""
    with pytest.raises(ValidationError, match="Parent account 9999 not found"):
        chart_service.create_account("Orphan", "Assets", parent_id="9999")


def test_create_account_parent_must_be_group(chart_service):
    """Test that postable accounts cannot have children."""
    with pytest.raises(ValidationError, match="not a group account"):
        chart_service.create_account("Nested", "Liabilities", parent_id="7001")


def test_create_account_duplicate_code(chart_service):
    """Test that an existing code cannot be reused."""
    with pytest.raises(ValidationError, match="already exists"):
        chart_service.create_account("Other", "Liabilities", account_id="7001")


def test_require_account_missing(chart_service):
    """Test that require_account raises NotFoundError."""
    with pytest.raises(NotFoundError, match="Account 1234 not found"):
        chart_service.require_account("1234")


def test_list_accounts_filters(chart_service):
    """Test listing accounts with filters."""
    chart_service.create_account("Banks", "Assets", account_id="1000", is_group=True)
    chart_service.create_account("Kuraimi", "Assets", parent_id="1000", currency="YER")

    leaves = chart_service.list_accounts(is_group=False)
    assert [acc.id for acc in leaves] == ["1000.1", "7001", "7002"]

    assets = chart_service.list_accounts(account_type="Assets")
    assert [acc.id for acc in assets] == ["1000", "1000.1"]

    children = chart_service.list_accounts(parent_id="7000")
    assert [acc.id for acc in children] == ["7001", "7002"]

    usdt = chart_service.list_accounts(currency="usdt")
    assert [acc.id for acc in usdt] == ["7002"]
