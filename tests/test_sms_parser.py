"""Tests for bank SMS parsing."""

from datetime import datetime
from decimal import Decimal

import pytest

from remitbook.domain.entities import SmsParsingRule
from remitbook.domain.errors import ValidationError
from remitbook.domain.sms_parser import (
    DEFAULT_RULES,
    SmsParser,
    parse_sms,
    validate_parsed_sms,
)


def marker_rule(rule_id, name, currency, priority=0, **markers):
    fields = {
        "amount_starts_after": "استلمت",
        "amount_ends_before": "",
        "person_starts_after": "من",
        "person_ends_before": "",
    }
    fields.update(markers)
    return SmsParsingRule(
        id=rule_id,
        name=name,
        flow_type="credit",
        priority=priority,
        created_at=datetime(2024, 1, 1),
        currency=currency,
        **fields,
    )


def test_received_sms_without_currency_defaults_to_yer():
    """Test the plain received format."""
    outcome = parse_sms("استلمت 5000 من محمد")

    assert outcome.ok
    assert outcome.rule_name == "received_istalamt"
    parsed = outcome.parsed
    assert parsed.type == "credit"
    assert parsed.amount == Decimal("5000")
    assert parsed.currency == "YER"
    assert parsed.person == "محمد"


def test_received_sms_with_currency_and_commas():
    """Test an explicit currency code and a thousands separator."""
    outcome = parse_sms("استلمت 5,000 USD من شركة الأمل للصرافة.")

    assert outcome.parsed.amount == Decimal("5000")
    assert outcome.parsed.currency == "USD"
    assert outcome.parsed.person == "شركة الأمل للصرافة"


def test_received_sms_with_arabic_digits():
    """Test that Arabic-Indic digits are read as ASCII digits."""
    outcome = parse_sms("استلمت ٥٠٠٠ من محمد")

    assert outcome.parsed.amount == Decimal("5000")


def test_deposit_awda_format():
    """Test the deposit format with a glued currency code."""
    outcome = parse_sms("أودع/عبدالله عبدالغفور لحسابك2500 YERرصيدك146688٫9YER")

    assert outcome.rule_name == "deposit_awda"
    assert outcome.parsed.type == "credit"
    assert outcome.parsed.amount == Decimal("2500")
    assert outcome.parsed.currency == "YER"
    assert outcome.parsed.person == "عبدالله عبدالغفور"


def test_deposit_tam_idaa_format():
    """Test the deposit format with a currency written in words."""
    outcome = parse_sms("تم إيداع 25000 ريال يمني الى حسابك من طرف علي عبدالله صالح.")

    assert outcome.rule_name == "deposit_tam_idaa"
    assert outcome.parsed.amount == Decimal("25000")
    assert outcome.parsed.currency == "YER"
    assert outcome.parsed.person == "علي عبدالله صالح"


def test_transfer_format_is_debit():
    """Test the outgoing transfer format."""
    outcome = parse_sms("تم تحويل مبلغ 500.00 ر.س. إلى فهد الغامدي")

    assert outcome.rule_name == "transfer_tam_tahwil"
    assert outcome.parsed.type == "debit"
    assert outcome.parsed.amount == Decimal("500")
    assert outcome.parsed.currency == "SAR"
    assert outcome.parsed.person == "فهد الغامدي"


def test_unrecognized_sms_is_reported_not_raised():
    """Test that a non-match comes back as a failure reason."""
    outcome = parse_sms("Your OTP is 123456")

    assert not outcome.ok
    assert outcome.parsed is None
    assert outcome.failure_reason == "No parsing rule matched"


def test_empty_sms():
    """Test an empty message."""
    assert parse_sms("   ").failure_reason == "Empty message"


def test_builtin_rule_order_is_preserved():
    """Test that the built-in rules run in their declared order."""
    assert [rule.name for rule in SmsParser().rules] == [rule.name for rule in DEFAULT_RULES]
    assert [rule.name for rule in DEFAULT_RULES] == [
        "deposit_awda",
        "deposit_tam_idaa",
        "transfer_tam_tahwil",
        "received_istalamt",
    ]


def test_custom_rule_runs_before_builtin_rules():
    """Test that an operator rule wins over a built-in rule."""
    rule = marker_rule(1, "kuraimi", "SAR")

    outcome = parse_sms("استلمت 5000 من محمد", custom_rules=[rule])

    assert outcome.rule_name == "custom:kuraimi"
    assert outcome.parsed.currency == "SAR"
    assert outcome.parsed.person == "محمد"


def test_custom_rules_ordered_by_priority():
    """Test that lower priority values run first."""
    late = marker_rule(1, "late", "USD", priority=5)
    early = marker_rule(2, "early", "SAR", priority=1)

    parser = SmsParser(custom_rules=[late, early])

    assert [r.name for r in parser.rules[:2]] == ["custom:early", "custom:late"]
    assert parser.parse_sms("استلمت 5000 من محمد").parsed.currency == "SAR"


def test_custom_rule_with_end_markers():
    """Test a marker rule with closing markers."""
    rule = marker_rule(
        1,
        "tadhamon",
        None,
        amount_starts_after="مبلغ",
        amount_ends_before="ريال",
        person_starts_after="من",
        person_ends_before="رصيدك",
    )

    outcome = parse_sms("وصلك مبلغ 12,500 ريال من سالم احمد رصيدك 900", custom_rules=[rule], default_currency="YER")

    assert outcome.rule_name == "custom:tadhamon"
    assert outcome.parsed.amount == Decimal("12500")
    assert outcome.parsed.currency == "YER"
    assert outcome.parsed.person == "سالم احمد"


def test_default_currency_used_when_rule_has_none():
    """Test that a marker rule without currency uses the fallback."""
    rule = marker_rule(1, "plain", None)

    assert parse_sms("استلمت 10 من محمد", custom_rules=[rule], default_currency="SAR").parsed.currency == "SAR"


def test_validate_parsed_sms_accepts_model_output():
    """Test validation of an externally parsed mapping."""
    parsed = validate_parsed_sms({"type": "Credit", "amount": "1,250.50", "currency": "usd", "person": " علي  حسن "})

    assert parsed.type == "credit"
    assert parsed.amount == Decimal("1250.50")
    assert parsed.currency == "USD"
    assert parsed.person == "علي حسن"


def test_validate_parsed_sms_uses_default_currency():
    """Test the default currency fallback."""
    parsed = validate_parsed_sms({"type": "debit", "amount": 20, "person": "علي"}, default_currency="YER")
    assert parsed.currency == "YER"


@pytest.mark.parametrize(
    "data, message",
    [
        ({"type": "refund", "amount": "10", "currency": "USD", "person": "a"}, "Invalid SMS type"),
        ({"type": "credit", "amount": "abc", "currency": "USD", "person": "a"}, "Could not parse amount"),
        ({"type": "credit", "amount": None, "currency": "USD", "person": "a"}, "Invalid SMS amount"),
        ({"type": "credit", "amount": True, "currency": "USD", "person": "a"}, "Invalid SMS amount"),
        ({"type": "credit", "amount": "0", "currency": "USD", "person": "a"}, "greater than zero"),
        ({"type": "credit", "amount": "10", "currency": "USD", "person": "  "}, "person must not be empty"),
        ({"type": "credit", "amount": "10", "currency": "dollars", "person": "a"}, "Invalid currency"),
        ({"type": "credit", "amount": "10", "person": "a"}, "Invalid currency"),
    ],
)
def test_validate_parsed_sms_rejects_bad_fields(data, message):
    """Test that invalid fields raise ValidationError."""
    with pytest.raises(ValidationError, match=message):
        validate_parsed_sms(data)


def test_validate_parsed_sms_requires_mapping():
    """Test that non-mapping output is rejected."""
    with pytest.raises(ValidationError, match="must be a mapping"):
        validate_parsed_sms(["credit", 10])
